"""
Code Page Resolution Tests
==========================

Tests for the language driver byte table in dbfkit.dbf.charset.
"""

import codecs

import pytest

from dbfkit.dbf.charset import (
    CODE_PAGES,
    CURRENT_ANSI,
    code_byte_for,
    code_page_for,
    codec_name,
    default_encoding,
    resolve_encoding,
)


class TestCodePageTable:
    """Tests for the static byte -> code page table."""

    @pytest.mark.parametrize("code_byte,code_page", [
        (0x01, 437),
        (0x02, 850),
        (0x03, 1252),
        (0x26, 866),
        (0x64, 852),
        (0x65, 866),
        (0xC8, 1250),
        (0xC9, 1251),
        (0xCA, 1254),
        (0xCB, 1253),
    ])
    def test_known_bytes(self, code_byte: int, code_page: int):
        """Documented bytes map to their code pages."""
        assert code_page_for(code_byte) == code_page

    def test_current_ansi_has_no_code_page(self):
        """0x57 means 'current ANSI code page' and maps to nothing."""
        assert CURRENT_ANSI not in CODE_PAGES
        assert code_page_for(CURRENT_ANSI) is None

    def test_unmapped_byte(self):
        assert code_page_for(0x00) is None
        assert code_page_for(0xFF) is None

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            CODE_PAGES[0x01] = 850


class TestResolveEncoding:
    """Tests for resolve_encoding()."""

    def test_every_byte_resolves(self):
        """Resolution is total: all 256 bytes give a usable codec."""
        for code_byte in range(256):
            name = resolve_encoding(code_byte)
            assert codecs.lookup(name) is not None

    def test_windows_cyrillic(self):
        assert resolve_encoding(0xC9) == "cp1251"

    def test_dos_latin(self):
        assert resolve_encoding(0x02) == "cp850"

    def test_macintosh(self):
        assert resolve_encoding(0x04) == codecs.lookup("mac_roman").name

    def test_current_ansi_uses_default(self):
        assert resolve_encoding(CURRENT_ANSI) == default_encoding()

    def test_unmapped_uses_default(self):
        assert resolve_encoding(0x00) == default_encoding()

    def test_unsupported_code_page_uses_default(self):
        """Code pages Python has no codec for fall back to the default."""
        assert codec_name(895) is None
        unsupported = [b for b, cp in CODE_PAGES.items() if codec_name(cp) is None]
        for code_byte in unsupported:
            assert resolve_encoding(code_byte) == default_encoding()


class TestCodeByteFor:
    """Tests for the reverse lookup used by the writer."""

    def test_alias(self):
        """Aliases resolve to the same codec as the table entry."""
        assert code_byte_for("windows-1251") == 0xC9

    def test_first_entry_wins(self):
        """437 appears many times; the lowest byte is returned."""
        assert code_byte_for("cp437") == 0x01

    def test_unknown_encoding(self):
        assert code_byte_for("utf-8") == 0
        assert code_byte_for("no-such-codec") == 0

    def test_round_trip(self):
        """A byte found by code_byte_for resolves back to the same codec."""
        for encoding in ("cp850", "cp1252", "cp866", "cp1250"):
            assert resolve_encoding(code_byte_for(encoding)) == encoding
