"""
dbfkit Configuration
====================

Reader settings. Configuration can come from:
- Default values (defined here)
- Keyword arguments
- Environment variables (ReaderConfig.from_env)
"""

from dataclasses import dataclass
from datetime import tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import codecs
import logging
import os

# Logger for this module
logger = logging.getLogger(__name__)

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


@dataclass
class ReaderConfig:
    """
    Settings applied by DbfReader to every record it produces.

    Attributes:
        encoding: Codec for text fields, overriding the code page byte
            (default: None, use the file's code page)
        timezone: Zone attached to DateTime values (default: None, naive)
        strict_lengths: Raise DBFFormatError when the declared header or
            record length disagrees with the field table (default: False,
            log a warning)
        skip_deleted: Iteration skips records flagged as deleted
            (default: False)
    """

    encoding: Optional[str] = None
    timezone: Optional[tzinfo] = None
    strict_lengths: bool = False
    skip_deleted: bool = False

    @classmethod
    def from_env(cls) -> "ReaderConfig":
        """
        Create ReaderConfig from environment variables.

        Environment variables (all optional):
            DBFKIT_ENCODING: Python codec name (e.g. "cp850")
            DBFKIT_TIMEZONE: IANA zone name (e.g. "Europe/Lisbon")
            DBFKIT_STRICT_LENGTHS: 1/0, true/false, yes/no, on/off
            DBFKIT_SKIP_DELETED: 1/0, true/false, yes/no, on/off

        Invalid values are logged and ignored.

        Returns:
            ReaderConfig with values from environment variables
        """
        config = cls()

        if encoding := os.environ.get("DBFKIT_ENCODING"):
            try:
                config.encoding = codecs.lookup(encoding).name
            except LookupError:
                logger.warning(f"Ignoring unknown DBFKIT_ENCODING '{encoding}'")

        if zone := os.environ.get("DBFKIT_TIMEZONE"):
            try:
                config.timezone = ZoneInfo(zone)
            except (ZoneInfoNotFoundError, ValueError):
                logger.warning(f"Ignoring unknown DBFKIT_TIMEZONE '{zone}'")

        if (strict := _env_flag("DBFKIT_STRICT_LENGTHS")) is not None:
            config.strict_lengths = strict

        if (skip := _env_flag("DBFKIT_SKIP_DELETED")) is not None:
            config.skip_deleted = skip

        return config


def _env_flag(name: str) -> Optional[bool]:
    value = os.environ.get(name)
    if value is None:
        return None
    value = value.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    logger.warning(f"Ignoring invalid {name} value '{value}'")
    return None
