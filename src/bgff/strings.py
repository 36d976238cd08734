"""
Localized strings.

A LOCSTRING field holds an optional reference into the game's talk table
(TLK file) plus any number of embedded substrings, one per language and
speaker gender.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional


# High bit of a StrRef marks an entry in the module's own TLK file
USER_TLK_MASK = 0x8000_0000


class Language(IntEnum):
    """Languages a substring can be written in."""

    ENGLISH = 0
    FRENCH = 1
    GERMAN = 2
    ITALIAN = 3
    SPANISH = 4
    POLISH = 5
    KOREAN = 128
    CHINESE_TRADITIONAL = 129
    CHINESE_SIMPLIFIED = 130
    JAPANESE = 131


class Gender(IntEnum):
    """Speaker gender a substring is written for."""

    MALE = 0
    FEMALE = 1


@dataclass(frozen=True)
class SubString:
    """
    One language/gender variant of a localized string.

    language and gender are plain ints on decode when the file uses an id
    outside the Language enum; IntEnum members compare equal to their ints.
    """

    language: int
    gender: int
    text: str

    @property
    def string_id(self) -> int:
        return self.language * 2 + self.gender

    @classmethod
    def from_string_id(cls, string_id: int, text: str) -> "SubString":
        return cls(language=string_id >> 1, gender=string_id & 1, text=text)


@dataclass(frozen=True)
class LocString:
    """
    Localized string value.

    Properties:
        str_ref: Index into the TLK file, None when the string is embedded only
        strings: Embedded substrings in file order
    """

    str_ref: Optional[int] = None
    strings: tuple = field(default_factory=tuple)

    def __post_init__(self):
        # Accept any iterable of substrings but store an immutable tuple
        object.__setattr__(self, "strings", tuple(self.strings))

    @property
    def is_user(self) -> bool:
        """True when str_ref points into the module TLK rather than the game TLK."""
        return self.str_ref is not None and bool(self.str_ref & USER_TLK_MASK)

    def get(self, language: int = Language.ENGLISH, gender: int = Gender.MALE) -> Optional[str]:
        """Return the embedded text for a language and gender, if present."""
        for sub in self.strings:
            if sub.language == language and sub.gender == gender:
                return sub.text
        return None
