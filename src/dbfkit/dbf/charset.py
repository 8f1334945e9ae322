"""
Legacy Code Page Table
======================

Byte 29 of a DBF header (the "language driver" byte) names the character
encoding used for text fields. This module maps that byte to a code page
number and then to a Python codec name.

The lookup is total: the special byte 0x57 ("current ANSI code page"),
any byte missing from the table and any code page that Python's codecs
registry does not know all resolve to the process default encoding.

Reference
---------
- https://www.clicketyclick.dk/databases/xbase/format/dbf.html#DBF_STRUCT
- Visual FoxPro "Code Pages Supported by Visual FoxPro"
"""

from types import MappingProxyType
from typing import Mapping, Optional
import codecs
import locale
import logging

# Logger for this module
logger = logging.getLogger(__name__)


# =============================================================================
# Code Page Table
# =============================================================================

# Marks "use the ANSI code page of the machine reading the file"
CURRENT_ANSI = 0x57

CODE_PAGES: Mapping[int, int] = MappingProxyType({
    0x01: 437,      # US MS-DOS
    0x02: 850,      # International MS-DOS
    0x03: 1252,     # Windows ANSI Latin I
    0x04: 10000,    # Standard Macintosh
    0x08: 865,      # Danish OEM
    0x09: 437,      # Dutch OEM
    0x0A: 850,      # Dutch OEM (secondary)
    0x0B: 437,      # Finnish OEM
    0x0D: 437,      # French OEM
    0x0E: 850,      # French OEM (secondary)
    0x0F: 437,      # German OEM
    0x10: 850,      # German OEM (secondary)
    0x11: 437,      # Italian OEM
    0x12: 850,      # Italian OEM (secondary)
    0x13: 932,      # Japanese Shift-JIS
    0x14: 850,      # Spanish OEM (secondary)
    0x15: 437,      # Swedish OEM
    0x16: 850,      # Swedish OEM (secondary)
    0x17: 865,      # Norwegian OEM
    0x18: 437,      # Spanish OEM
    0x19: 437,      # English OEM (Great Britain)
    0x1A: 850,      # English OEM (Great Britain, secondary)
    0x1B: 437,      # English OEM (US)
    0x1C: 863,      # French OEM (Canada)
    0x1D: 850,      # French OEM (secondary)
    0x1F: 852,      # Czech OEM
    0x22: 852,      # Hungarian OEM
    0x23: 852,      # Polish OEM
    0x24: 860,      # Portuguese OEM
    0x25: 850,      # Portuguese OEM (secondary)
    0x26: 866,      # Russian OEM
    0x37: 850,      # English OEM (US, secondary)
    0x40: 852,      # Romanian OEM
    0x4D: 936,      # Chinese GBK (PRC)
    0x4E: 949,      # Korean (ANSI/OEM)
    0x4F: 950,      # Chinese Big5 (Taiwan)
    0x50: 874,      # Thai (ANSI/OEM)
    0x58: 1252,     # Western European ANSI
    0x59: 1252,     # Spanish ANSI
    0x64: 852,      # Eastern European MS-DOS
    0x65: 866,      # Russian MS-DOS
    0x66: 865,      # Nordic MS-DOS
    0x67: 861,      # Icelandic MS-DOS
    0x68: 895,      # Kamenicky (Czech) MS-DOS
    0x69: 620,      # Mazovia (Polish) MS-DOS
    0x6A: 737,      # Greek MS-DOS (437G)
    0x6B: 857,      # Turkish MS-DOS
    0x6C: 863,      # French-Canadian MS-DOS
    0x78: 950,      # Taiwan Big 5
    0x79: 949,      # Hangul (Wansung)
    0x7A: 936,      # PRC GBK
    0x7B: 932,      # Japanese Shift-JIS
    0x7C: 874,      # Thai Windows/MS-DOS
    0x86: 737,      # Greek OEM
    0x87: 852,      # Slovenian OEM
    0x88: 857,      # Turkish OEM
    0x96: 10007,    # Russian Macintosh
    0x97: 10029,    # Eastern European Macintosh
    0x98: 10006,    # Greek Macintosh
    0xC8: 1250,     # Eastern European Windows
    0xC9: 1251,     # Russian Windows
    0xCA: 1254,     # Turkish Windows
    0xCB: 1253,     # Greek Windows
    0xCC: 1257,     # Baltic Windows
})

# Macintosh code pages are registered under their own names in Python
_MAC_CODECS: Mapping[int, str] = MappingProxyType({
    10000: "mac_roman",
    10006: "mac_greek",
    10007: "mac_cyrillic",
    10029: "mac_latin2",
})


# =============================================================================
# Resolution
# =============================================================================

def default_encoding() -> str:
    """Return the process default text encoding as a normalised codec name."""
    return codecs.lookup(locale.getpreferredencoding(False)).name


def code_page_for(code_byte: int) -> Optional[int]:
    """
    Get the code page number for a language driver byte.

    Args:
        code_byte: Header byte 29 (0-255)

    Returns:
        The code page number, or None for 0x57 and unmapped bytes
    """
    if code_byte == CURRENT_ANSI:
        return None
    return CODE_PAGES.get(code_byte & 0xFF)


def codec_name(code_page: int) -> Optional[str]:
    """
    Get the Python codec name for a code page, if Python supports it.

    Args:
        code_page: Numeric code page (e.g. 1251)

    Returns:
        Normalised codec name such as "cp1251", or None if unsupported
    """
    name = _MAC_CODECS.get(code_page, f"cp{code_page}")
    try:
        return codecs.lookup(name).name
    except LookupError:
        return None


def resolve_encoding(code_byte: int) -> str:
    """
    Resolve a language driver byte to a usable Python codec name.

    Never raises: anything that cannot be mapped to a supported codec
    falls back to default_encoding().

    Args:
        code_byte: Header byte 29 (0-255)

    Returns:
        A codec name accepted by bytes.decode()

    Example:
        >>> resolve_encoding(0xC9)
        'cp1251'
    """
    code_page = code_page_for(code_byte)
    if code_page is None:
        return default_encoding()

    name = codec_name(code_page)
    if name is None:
        logger.debug(
            f"Code page {code_page} (byte 0x{code_byte:02X}) not supported, "
            f"using default encoding"
        )
        return default_encoding()
    return name


def code_byte_for(encoding: str) -> int:
    """
    Find the language driver byte for an encoding.

    Used when writing headers. The first table entry whose code page
    resolves to the same codec wins.

    Args:
        encoding: Any codec name or alias (e.g. "cp866", "IBM866")

    Returns:
        The language driver byte, or 0 if the encoding is not in the table
    """
    try:
        wanted = codecs.lookup(encoding).name
    except LookupError:
        return 0

    for code_byte, code_page in CODE_PAGES.items():
        if codec_name(code_page) == wanted:
            return code_byte
    return 0
