"""
Tests for field labels and localized string values.
"""

import pytest

from bgff.errors import InvalidEncoding, InvalidValue, LabelTooLong, UnsupportedKeyType
from bgff.label import Label, check_label
from bgff.strings import Gender, Language, LocString, SubString


class TestLabel:
    """16-byte NUL-padded labels."""

    def test_padding(self):
        """Short labels are padded with NUL bytes."""
        label = Label.from_str("Mod_Name")
        assert label.raw == b"Mod_Name" + b"\x00" * 8
        assert label.as_str() == "Mod_Name"
        assert str(label) == "Mod_Name"

    def test_full_width(self):
        """Exactly 16 bytes fits and has no terminator."""
        label = Label.from_str("A" * 16)
        assert label.raw == b"A" * 16
        assert label.as_str() == "A" * 16

    def test_too_long(self):
        """The error carries the label and its length."""
        with pytest.raises(LabelTooLong) as exc:
            Label.from_str("A" * 17)
        assert exc.value.length == 17
        assert exc.value.label == "A" * 17

    def test_limit_is_in_bytes(self):
        """The limit counts UTF-8 bytes, not characters."""
        assert Label.from_str("é" * 8).as_str() == "é" * 8
        with pytest.raises(LabelTooLong):
            Label.from_str("é" * 9)

    def test_not_a_string(self):
        """Should reject non-string labels."""
        with pytest.raises(UnsupportedKeyType):
            Label.from_str(42)

    def test_nul_rejected(self):
        """A NUL would end the label early when it is read back."""
        with pytest.raises(InvalidValue):
            Label.from_str("a\x00b")
        with pytest.raises(InvalidValue):
            check_label("\x00")

    def test_invalid_utf8(self):
        """Label bytes must be UTF-8."""
        with pytest.raises(InvalidEncoding):
            Label(b"\xff" + b"\x00" * 15).as_str()

    def test_check_label(self):
        """A valid label is returned unchanged."""
        assert check_label("Tag") == "Tag"


class TestLocString:
    """Localized string helpers."""

    def test_string_id(self):
        """String id packs language and gender."""
        sub = SubString(Language.FRENCH, Gender.FEMALE, "Bonjour")
        assert sub.string_id == 3
        assert SubString.from_string_id(3, "Bonjour") == sub

    def test_get(self):
        """Lookup by language, with English as the default."""
        value = LocString(strings=[
            SubString(Language.ENGLISH, Gender.MALE, "Sword"),
            SubString(Language.GERMAN, Gender.MALE, "Schwert"),
        ])
        assert value.get() == "Sword"
        assert value.get(Language.GERMAN) == "Schwert"
        assert value.get(Language.POLISH) is None

    def test_strings_become_tuple(self):
        """Substrings are stored as a tuple."""
        value = LocString(strings=[SubString(0, 0, "a")])
        assert isinstance(value.strings, tuple)

    def test_user_tlk(self):
        """The high bit of str_ref marks the user talk table."""
        assert LocString(str_ref=0x8000_0001).is_user
        assert not LocString(str_ref=1).is_user
        assert not LocString().is_user
