"""
Header and Metadata Tests
=========================

Tests for dialect tags, the 32-byte header codec, field table parsing
and the Metadata value object.
"""

import io
import logging
from datetime import date

import pytest

from dbfkit.dbf.fields import FieldDefinition, FieldType
from dbfkit.dbf.header import (
    FILE_HEADER_SIZE,
    FileType,
    Metadata,
    decode_header,
    encode_header,
    encode_metadata,
    parse_update_date,
    read_field_table,
    read_metadata,
)
from dbfkit.dbf.stream import ByteSource
from dbfkit.errors import DBFFormatError, FieldNotFoundError


def source_for(data: bytes) -> ByteSource:
    return ByteSource(io.BytesIO(data))


# =============================================================================
# Dialect Tags
# =============================================================================

class TestFileType:
    """Tests for the FileType enum."""

    def test_from_byte(self):
        assert FileType.from_byte(0x30) is FileType.VISUAL_FOXPRO
        assert FileType.from_byte(0xF5) is FileType.FOXPRO_MEMO

    def test_from_byte_unknown(self):
        with pytest.raises(DBFFormatError) as exc_info:
            FileType.from_byte(0x99)
        assert exc_info.value.position == 0

    def test_get_description(self):
        assert "Visual FoxPro" in FileType.VISUAL_FOXPRO.get_description()
        for file_type in FileType:
            assert file_type.get_description()

    def test_verbatim_year_dialect(self):
        assert FileType.FOXBASE_PLUS.year_is_verbatim
        assert not FileType.FOXBASE_PLUS_MEMO.year_is_verbatim


# =============================================================================
# Header Codec
# =============================================================================

class TestUpdateDate:
    """Tests for the 3-byte update date."""

    def test_years_since_1900(self):
        assert parse_update_date(124, 5, 17, FileType.VISUAL_FOXPRO) == date(2024, 5, 17)
        assert parse_update_date(99, 12, 31, FileType.DBASE_IV) == date(1999, 12, 31)

    def test_verbatim_year(self):
        assert parse_update_date(124, 5, 17, FileType.FOXBASE_PLUS) == date(124, 5, 17)

    def test_invalid_date(self):
        assert parse_update_date(124, 13, 40, FileType.VISUAL_FOXPRO) is None

    def test_zero_date(self):
        """Some producers leave the date bytes zero."""
        assert parse_update_date(0, 0, 0, FileType.VISUAL_FOXPRO) is None


class TestHeaderCodec:
    """Tests for decode_header() / encode_header()."""

    def test_decode(self, make_header):
        metadata = decode_header(make_header(
            file_type=0x30,
            year_byte=124, month=5, day=17,
            record_count=42,
            header_length=296,
            record_length=120,
            tx_flag=1,
            encryption_flag=0,
            code_page=0xC9,
        ))
        assert metadata.file_type is FileType.VISUAL_FOXPRO
        assert metadata.update_date == date(2024, 5, 17)
        assert metadata.record_count == 42
        assert metadata.header_length == 296
        assert metadata.record_length == 120
        assert metadata.tx_flag == 1
        assert metadata.encryption_flag == 0
        assert metadata.code_page_byte == 0xC9
        assert metadata.encoding == "cp1251"
        assert metadata.fields == ()

    def test_decode_unsigned_lengths(self, make_header):
        """Header and record lengths are unsigned 16-bit values."""
        metadata = decode_header(make_header(header_length=40000, record_length=65535))
        assert metadata.header_length == 40000
        assert metadata.record_length == 65535

    def test_decode_short(self):
        with pytest.raises(DBFFormatError, match="too short"):
            decode_header(bytes([0x03]) + bytes(20))

    def test_decode_unknown_dialect(self, make_header):
        with pytest.raises(DBFFormatError, match="Unknown file type"):
            decode_header(make_header(file_type=0x42))

    def test_encode_length(self):
        assert len(encode_header(Metadata())) == FILE_HEADER_SIZE

    def test_encode_reserved_zero(self):
        raw = encode_header(Metadata(file_type=FileType.DBASE_IV, record_count=7))
        assert raw[12:14] == b"\x00\x00"
        assert raw[16:29] == bytes(13)

    @pytest.mark.parametrize("file_type", [
        t for t in FileType if not t.year_is_verbatim
    ])
    def test_round_trip(self, file_type: FileType):
        original = Metadata(
            file_type=file_type,
            update_date=date(2023, 11, 30),
            record_count=1234,
            header_length=65,
            record_length=33,
            tx_flag=1,
            encryption_flag=1,
            code_page_byte=0x65,
            encoding="cp866",
        )
        decoded = decode_header(encode_header(original))
        assert decoded == original

    def test_round_trip_verbatim_year_diverges(self):
        """FoxBASE+ reads the year byte verbatim, so 2023 comes back as 123."""
        original = Metadata(file_type=FileType.FOXBASE_PLUS, update_date=date(2023, 1, 2))
        decoded = decode_header(encode_header(original))
        assert decoded.update_date == date(123, 1, 2)


# =============================================================================
# Field Table
# =============================================================================

class TestFieldTable:
    """Tests for read_field_table()."""

    def test_two_descriptors(self, make_descriptor):
        data = make_descriptor("NAME", "C", 20) + make_descriptor("AGE", "N", 3) + b"\x0d"
        fields = read_field_table(source_for(data))
        assert len(fields) == 2
        metadata = Metadata(fields=tuple(fields))
        assert [f.offset for f in metadata.fields] == [1, 21]

    def test_stops_at_terminator(self, make_descriptor):
        """Bytes after the terminator are not consumed."""
        source = source_for(make_descriptor("A", "C", 1) + b"\x0d" + b"REST")
        read_field_table(source)
        assert source.position == 33
        assert source.read_fully(4) == b"REST"

    def test_no_fields(self):
        assert read_field_table(source_for(b"\x0d")) == []

    def test_missing_terminator(self, make_descriptor):
        with pytest.raises(DBFFormatError, match="terminator"):
            read_field_table(source_for(make_descriptor("A", "C", 1)))

    def test_truncated_descriptor(self, make_descriptor):
        with pytest.raises(DBFFormatError, match="Truncated") as exc_info:
            read_field_table(source_for(make_descriptor("A", "C", 1)[:20]))
        assert exc_info.value.position == 0

    def test_bad_type_reports_position(self, make_descriptor):
        data = make_descriptor("A", "C", 1) + make_descriptor("B", "Z", 1) + b"\x0d"
        with pytest.raises(DBFFormatError, match="descriptor #2") as exc_info:
            read_field_table(source_for(data))
        assert exc_info.value.position == 32


class TestReadMetadata:
    """Tests for read_metadata()."""

    def test_end_to_end(self, make_header, make_descriptor):
        data = (
            make_header(record_count=1, header_length=65, record_length=10)
            + make_descriptor("NAME", "C", 9)
            + b"\x0d"
        )
        metadata = read_metadata(source_for(data))
        assert metadata.record_length == 10
        assert metadata.get_field("NAME").offset == 1
        assert metadata.warnings == ()

    def test_length_mismatch_warns(self, make_header, make_descriptor, caplog):
        """Declared lengths that disagree are kept and reported."""
        data = (
            make_header(header_length=300, record_length=12)
            + make_descriptor("NAME", "C", 9)
            + b"\x0d"
        )
        with caplog.at_level(logging.WARNING, logger="dbfkit.dbf.header"):
            metadata = read_metadata(source_for(data))

        assert metadata.header_length == 300
        assert metadata.record_length == 12
        assert len(metadata.warnings) == 2
        assert "Header length mismatch" in caplog.text
        assert "Record length mismatch" in caplog.text

    def test_length_mismatch_strict(self, make_header, make_descriptor):
        data = make_header(header_length=65, record_length=99) + make_descriptor("NAME", "C", 9) + b"\x0d"
        with pytest.raises(DBFFormatError, match="Record length mismatch"):
            read_metadata(source_for(data), strict_lengths=True)


# =============================================================================
# Metadata
# =============================================================================

class TestMetadata:
    """Tests for the Metadata value object."""

    def test_from_fields(self):
        metadata = Metadata.from_fields(
            [
                FieldDefinition("NAME", FieldType.CHARACTER, 20),
                FieldDefinition("PRICE", FieldType.NUMERIC, 10, 2),
            ],
            encoding="cp1252",
        )
        assert metadata.file_type is FileType.FOXBASE_PLUS
        assert metadata.update_date == date.today()
        assert metadata.header_length == 32 + 64 + 1
        assert metadata.record_length == 31
        assert metadata.code_page_byte == 0x03
        assert metadata.record_count == 0

    def test_from_fields_string(self):
        metadata = Metadata.from_fields_string("NAME,C,20,0|PRICE,N,10,2")
        assert metadata.field_names == ["NAME", "PRICE"]
        assert metadata.fields_string() == "NAME,C,20,0|PRICE,N,10,2"

    def test_get_field(self):
        metadata = Metadata.from_fields_string("NAME,C,20,0|PRICE,N,10,2")
        assert metadata.get_field("PRICE").offset == 21
        assert metadata.has_field("NAME")
        assert not metadata.has_field("name")

    def test_get_field_missing(self):
        metadata = Metadata.from_fields_string("NAME,C,20,0")
        with pytest.raises(FieldNotFoundError, match="no field named 'AGE'"):
            metadata.get_field("AGE")

    def test_field_not_found_is_key_error(self):
        metadata = Metadata.from_fields_string("NAME,C,20,0")
        with pytest.raises(KeyError):
            metadata.get_field("AGE")

    def test_index_is_read_only(self):
        metadata = Metadata.from_fields_string("NAME,C,20,0")
        with pytest.raises(TypeError):
            metadata.field_index["OTHER"] = metadata.get_field("NAME")

    def test_immutable(self):
        metadata = Metadata()
        with pytest.raises(AttributeError):
            metadata.record_count = 5

    def test_with_fields_recomputes_offsets(self):
        metadata = Metadata.from_fields_string("A,C,5,0|B,C,5,0")
        reordered = metadata.with_fields(reversed(metadata.fields))
        assert reordered.field_names == ["B", "A"]
        assert reordered.get_field("B").offset == 1
        assert reordered.get_field("A").offset == 6
        assert metadata.get_field("A").offset == 1

    def test_duplicate_names_keep_first(self, caplog):
        fields = [
            FieldDefinition("A", FieldType.CHARACTER, 5),
            FieldDefinition("A", FieldType.NUMERIC, 3),
        ]
        with caplog.at_level(logging.WARNING):
            metadata = Metadata(fields=tuple(fields))
        assert metadata.get_field("A").field_type is FieldType.CHARACTER
        assert "Duplicate field name" in caplog.text

    def test_encode_metadata(self):
        metadata = Metadata.from_fields_string("NAME,C,9,0")
        raw = encode_metadata(metadata)
        assert len(raw) == metadata.header_length
        assert raw[-1] == 0x0D

        parsed = read_metadata(source_for(raw))
        assert parsed.fields == metadata.fields

    def test_get_info(self):
        info = Metadata.from_fields_string("NAME,C,9,0").get_info()
        assert info["field_count"] == 1
        assert info["file_type_byte"] == "0x03"
        assert info["record_length"] == 10
