"""
dbftool - DBF Table Command-Line Interface
==========================================

This module implements the command-line interface for inspecting DBF
tables.

Commands
--------
- **info**: Show header information
- **fields**: List the field table
- **dump**: Print records
- **validate**: Decode every record and report problems

Usage Examples
--------------
Show header information:
    $ dbftool info CUSTOMER.DBF

List fields:
    $ dbftool fields CUSTOMER.DBF

Print the first ten records, resolving memo fields:
    $ dbftool dump --memo CUSTOMER.FPT --limit 10 CUSTOMER.DBF

Print records as JSON lines, reading text as cp850:
    $ dbftool dump --json --encoding cp850 CUSTOMER.DBF

Check a file:
    $ dbftool -v validate CUSTOMER.DBF
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from dbfkit import __version__
from dbfkit.config import ReaderConfig
from dbfkit.errors import DBFError, DBFFormatError
from dbfkit.dbf import DbfReader, FieldType


# =============================================================================
# CLI Context and Utilities
# =============================================================================

class Context:
    """
    Shared context for CLI commands.

    Stores the verbosity flag and the reader settings.
    """

    def __init__(self) -> None:
        self.verbose: bool = False
        self.config: ReaderConfig = ReaderConfig()

    def setup_logging(self) -> None:
        """Configure logging based on verbosity."""
        level = logging.DEBUG if self.verbose else logging.WARNING
        logging.basicConfig(
            level=level,
            format="%(levelname)s: %(message)s" if self.verbose else "%(message)s",
        )


pass_context = click.make_pass_decorator(Context, ensure=True)

FILE_ARGUMENT = click.Path(exists=True, dir_okay=False, path_type=Path)


def fail(message: str) -> None:
    """Print an error and exit with status 1."""
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


# =============================================================================
# Main CLI Group
# =============================================================================

@click.group()
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Enable verbose output",
)
@click.version_option(__version__, "--version", "-V", prog_name="dbftool")
@pass_context
def main(ctx: Context, verbose: bool) -> None:
    """
    Inspect dBASE/FoxPro DBF tables.

    \b
    Commands:
      info      Show header information
      fields    List the field table
      dump      Print records
      validate  Decode every record and report problems

    \b
    Environment:
      DBFKIT_ENCODING, DBFKIT_TIMEZONE, DBFKIT_STRICT_LENGTHS and
      DBFKIT_SKIP_DELETED set the reader defaults.
    """
    ctx.verbose = verbose
    ctx.setup_logging()
    ctx.config = ReaderConfig.from_env()


# =============================================================================
# Info Command
# =============================================================================

@main.command("info")
@click.argument("dbf_file", type=FILE_ARGUMENT)
@pass_context
def cmd_info(ctx: Context, dbf_file: Path) -> None:
    """
    Show header information for a DBF file.

    \b
    Example:
      dbftool info CUSTOMER.DBF
    """
    try:
        with DbfReader.open(dbf_file, config=ctx.config) as reader:
            info = reader.metadata.get_info()
    except (DBFError, OSError) as e:
        fail(str(e))

    click.echo(f"Table Information: {dbf_file}")
    click.echo("=" * 40)
    click.echo(f"File Type:     {info['file_type']} ({info['file_type_byte']})")
    click.echo(f"Last Update:   {info['update_date'] or 'invalid'}")
    click.echo(f"Records:       {info['record_count']}")
    click.echo(f"Fields:        {info['field_count']}")
    click.echo(f"Header Length: {info['header_length']} bytes")
    click.echo(f"Record Length: {info['record_length']} bytes")
    click.echo(f"Encoding:      {info['encoding']} (code page byte {info['code_page_byte']})")
    if info["tx_flag"] or info["encryption_flag"]:
        click.echo(f"Flags:         transaction={info['tx_flag']} encryption={info['encryption_flag']}")
    for warning in info["warnings"]:
        click.echo(f"  WARNING: {warning}")


# =============================================================================
# Fields Command
# =============================================================================

@main.command("fields")
@click.argument("dbf_file", type=FILE_ARGUMENT)
@pass_context
def cmd_fields(ctx: Context, dbf_file: Path) -> None:
    """
    List the fields of a DBF file.

    \b
    Output format:
      NAME        Type  Length  Dec  Offset
      CUSTNO      N         10    0       1
    """
    try:
        with DbfReader.open(dbf_file, config=ctx.config) as reader:
            fields = reader.metadata.fields
    except (DBFError, OSError) as e:
        fail(str(e))

    click.echo(f"{'Name':<11} {'Type':<5} {'Length':>6} {'Dec':>4} {'Offset':>7}")
    click.echo("-" * 37)
    for f in fields:
        click.echo(
            f"{f.name:<11} {f.field_type.value:<5} {f.length:>6} "
            f"{f.decimals:>4} {f.offset:>7}"
        )


# =============================================================================
# Dump Command
# =============================================================================

@main.command("dump")
@click.argument("dbf_file", type=FILE_ARGUMENT)
@click.option(
    "-m", "--memo",
    "memo_file",
    type=FILE_ARGUMENT,
    default=None,
    help="Memo file (.FPT or .DBT) for memo fields",
)
@click.option(
    "-e", "--encoding",
    default=None,
    help="Text encoding, overriding the file's code page",
)
@click.option(
    "-n", "--limit",
    type=click.IntRange(min=0),
    default=None,
    help="Stop after this many records",
)
@click.option(
    "--include-deleted/--skip-deleted",
    default=None,
    help="Include records flagged as deleted (default: include)",
)
@click.option(
    "--json", "as_json",
    is_flag=True,
    help="Print one JSON object per record",
)
@pass_context
def cmd_dump(
    ctx: Context,
    dbf_file: Path,
    memo_file: Optional[Path],
    encoding: Optional[str],
    limit: Optional[int],
    include_deleted: Optional[bool],
    as_json: bool,
) -> None:
    """
    Print the records of a DBF file, one per line.

    \b
    Examples:
      dbftool dump CUSTOMER.DBF
      dbftool dump -m CUSTOMER.FPT -n 10 CUSTOMER.DBF
      dbftool dump --json --skip-deleted CUSTOMER.DBF
    """
    config = ctx.config
    if encoding:
        config.encoding = encoding
    if include_deleted is not None:
        config.skip_deleted = not include_deleted

    try:
        with DbfReader.open(dbf_file, memo_path=memo_file, config=config) as reader:
            for count, record in enumerate(reader):
                if limit is not None and count >= limit:
                    break
                if as_json:
                    row = {"_deleted": record.is_deleted(), **record.to_dict()}
                    click.echo(json.dumps(row, default=str, ensure_ascii=False))
                else:
                    flag = "*" if record.is_deleted() else " "
                    click.echo(f"{flag}{record.number:>6}  {record.to_text()}")
    except (DBFError, OSError) as e:
        fail(str(e))
    except LookupError as e:
        fail(f"Unknown encoding: {e}")


# =============================================================================
# Validate Command
# =============================================================================

@main.command("validate")
@click.argument("dbf_file", type=FILE_ARGUMENT)
@click.option(
    "-m", "--memo",
    "memo_file",
    type=FILE_ARGUMENT,
    default=None,
    help="Memo file (.FPT or .DBT); memo fields are skipped without it",
)
@pass_context
def cmd_validate(ctx: Context, dbf_file: Path, memo_file: Optional[Path]) -> None:
    """
    Validate a DBF file by decoding every field of every record.

    Exits with status 1 if the file is corrupt.

    \b
    Example:
      dbftool validate CUSTOMER.DBF
    """
    errors: list[str] = []
    warnings: list[str] = []

    try:
        with DbfReader.open(dbf_file, memo_path=memo_file, config=ctx.config) as reader:
            metadata = reader.metadata
            warnings.extend(metadata.warnings)

            for record in reader:
                for f in metadata.fields:
                    if f.field_type is FieldType.MEMO and memo_file is None:
                        continue
                    try:
                        record.get_value(f.name)
                    except (DBFError, ValueError) as e:
                        errors.append(f"Record {record.number}, field {f.name}: {e}")

            checked = reader.records_read
            if checked != metadata.record_count:
                warnings.append(
                    f"Header declares {metadata.record_count} records, "
                    f"file holds {checked}"
                )
    except DBFFormatError as e:
        click.echo(f"Validation FAILED: {e}", err=True)
        sys.exit(1)
    except (DBFError, OSError) as e:
        fail(str(e))

    if errors:
        click.echo(f"Validation FAILED: {dbf_file}", err=True)
        for error in errors:
            click.echo(f"  ERROR: {error}", err=True)
        sys.exit(1)

    if warnings:
        click.echo("Validation passed with warnings:")
        for warning in warnings:
            click.echo(f"  WARNING: {warning}")
    else:
        click.echo(f"Validation PASSED: {dbf_file}")
        if ctx.verbose:
            click.echo(f"{checked} records checked.")


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    main()
