"""
Tests for codec options and TOML loading.
"""

import logging

import pytest

from bgff.config import DEFAULT_OPTIONS, CodecOptions, load_options


class TestCodecOptions:
    """Option validation."""

    def test_defaults(self):
        """Should default to strict UTF-8 and 16-byte RESREFs."""
        assert DEFAULT_OPTIONS.encoding == "utf-8"
        assert DEFAULT_OPTIONS.errors == "strict"
        assert DEFAULT_OPTIONS.resref_max_len == 16
        assert DEFAULT_OPTIONS.dedupe_labels is False

    def test_unknown_encoding(self):
        """Should reject a codec Python does not know."""
        with pytest.raises(ValueError):
            CodecOptions(encoding="no-such-codec")

    def test_unknown_error_handler(self):
        """Should reject an unregistered error handler."""
        with pytest.raises(ValueError):
            CodecOptions(errors="no-such-handler")

    @pytest.mark.parametrize("size", [-1, 256])
    def test_resref_capacity_range(self, size):
        """RESREF length prefix is one byte."""
        with pytest.raises(ValueError):
            CodecOptions(resref_max_len=size)


class TestLoadOptions:
    """Loading the [gff] table from TOML."""

    def test_load(self, tmp_path):
        """Known keys are read from the [gff] table."""
        path = tmp_path / "bgff.toml"
        path.write_text(
            '[gff]\nencoding = "cp1252"\nresref_max_len = 32\ndedupe_labels = true\n'
        )
        options = load_options(path)
        assert options == CodecOptions(encoding="cp1252", resref_max_len=32, dedupe_labels=True)

    def test_missing_table(self, tmp_path):
        """No [gff] table gives the defaults."""
        path = tmp_path / "bgff.toml"
        path.write_text('[other]\nkey = 1\n')
        assert load_options(path) == CodecOptions()

    def test_unknown_key_logged(self, tmp_path, caplog):
        """Unknown keys are reported and ignored."""
        path = tmp_path / "bgff.toml"
        path.write_text('[gff]\nendian = "big"\nencoding = "latin-1"\n')
        with caplog.at_level(logging.WARNING, logger="bgff.config"):
            options = load_options(path)
        assert options.encoding == "latin-1"
        assert "endian" in caplog.text

    def test_invalid_value(self, tmp_path):
        """Bad values fail the same way as in the constructor."""
        path = tmp_path / "bgff.toml"
        path.write_text('[gff]\nresref_max_len = 1000\n')
        with pytest.raises(ValueError):
            load_options(path)
