"""
Field Descriptor Tests
======================

Tests for field types, the 32-byte descriptor codec, offset assignment
and the descriptive `name,type,length,decimals|...` string form.
"""

import struct

import pytest

from dbfkit.dbf.fields import (
    FIELD_DESCRIPTOR_SIZE,
    FieldDefinition,
    FieldType,
    assign_offsets,
    decode_field,
    encode_field,
    fields_to_string,
    header_length_for,
    parse_field_string,
    parse_fields_string,
    record_length_for,
)
from dbfkit.errors import DBFFormatError, DBFUsageError, FieldDefinitionError


class TestFieldType:
    """Tests for the FieldType enum."""

    def test_from_char(self):
        assert FieldType.from_char("C") is FieldType.CHARACTER
        assert FieldType.from_char("@") is FieldType.TIMESTAMP
        assert FieldType.from_char("+") is FieldType.AUTOINCREMENT

    def test_from_char_lowercase(self):
        assert FieldType.from_char("n") is FieldType.NUMERIC

    def test_from_char_unknown(self):
        with pytest.raises(DBFFormatError, match="Unknown field type"):
            FieldType.from_char("Z")

    def test_to_byte(self):
        assert FieldType.MEMO.to_byte() == 0x4D

    def test_categories(self):
        assert FieldType.VARCHAR.is_text()
        assert FieldType.FLOAT.is_numeric_text()
        assert FieldType.DATE_TIME.is_date_time()
        assert not FieldType.DATE.is_date_time()


class TestDescriptorCodec:
    """Tests for decode_field() / encode_field()."""

    def test_decode(self, make_descriptor):
        f = decode_field(make_descriptor("PRICE", "N", 10, 2))
        assert f.name == "PRICE"
        assert f.field_type is FieldType.NUMERIC
        assert f.length == 10
        assert f.decimals == 2

    def test_decode_full_width_name(self, make_descriptor):
        """An 11-byte name has no NUL terminator."""
        f = decode_field(make_descriptor("ABCDEFGHIJK", "C", 5))
        assert f.name == "ABCDEFGHIJK"

    def test_decode_unsigned_length(self, make_descriptor):
        """Lengths above 127 are read as unsigned."""
        f = decode_field(make_descriptor("NOTES", "C", 200))
        assert f.length == 200

    def test_decode_short(self):
        with pytest.raises(DBFFormatError, match="too short"):
            decode_field(b"NAME\x00" * 3)

    def test_decode_unknown_type(self, make_descriptor):
        with pytest.raises(DBFFormatError):
            decode_field(make_descriptor("X", "Z", 1))

    def test_encode_layout(self):
        raw = encode_field(FieldDefinition("AMOUNT", FieldType.NUMERIC, 12, 3, offset=5))
        assert len(raw) == FIELD_DESCRIPTOR_SIZE
        assert raw[0:11] == b"AMOUNT\x00\x00\x00\x00\x00"
        assert raw[11] == ord("N")
        assert struct.unpack_from("<I", raw, 12)[0] == 5
        assert raw[16] == 12
        assert raw[17] == 3
        assert raw[18:] == bytes(14)

    def test_encode_decode(self):
        field = FieldDefinition("BORN", FieldType.DATE, 8)
        assert decode_field(encode_field(field)) == field

    def test_encode_name_too_long(self):
        with pytest.raises(FieldDefinitionError, match="maximum is 11"):
            encode_field(FieldDefinition("TWELVE_CHARS", FieldType.CHARACTER, 1))

    def test_non_ascii_name_round_trip(self, make_descriptor):
        raw_name = "ИМЯ".encode("cp866")
        descriptor = make_descriptor(raw_name, "C", 10)
        field = decode_field(descriptor)
        assert field.name.encode("latin-1") == raw_name
        assert encode_field(field)[:11] == descriptor[:11]

    def test_encode_name_outside_latin1(self):
        with pytest.raises(FieldDefinitionError, match="cannot be stored"):
            encode_field(FieldDefinition("ИМЯ", FieldType.CHARACTER, 1))


class TestOffsets:
    """Tests for offset and length computation."""

    def test_offsets_start_at_one(self):
        fields = assign_offsets([
            FieldDefinition("A", FieldType.CHARACTER, 3),
            FieldDefinition("B", FieldType.NUMERIC, 5),
            FieldDefinition("C", FieldType.LOGICAL, 1),
        ])
        assert [f.offset for f in fields] == [1, 4, 9]

    @pytest.mark.parametrize("lengths", [[1], [9], [10, 8, 1], [255, 255, 3], [4] * 40])
    def test_offsets_cover_record(self, lengths):
        """Offsets strictly increase and the last field ends at the record end."""
        fields = assign_offsets(
            FieldDefinition(f"F{i}", FieldType.CHARACTER, n) for i, n in enumerate(lengths)
        )
        offsets = [f.offset for f in fields]
        assert offsets[0] == 1
        assert offsets == sorted(set(offsets))
        last = fields[-1]
        assert last.offset + last.length == record_length_for(fields)

    def test_assign_offsets_does_not_mutate(self):
        field = FieldDefinition("A", FieldType.CHARACTER, 3)
        assign_offsets([field])
        assert field.offset == 0

    def test_header_length(self):
        fields = [FieldDefinition("A", FieldType.CHARACTER, 3)] * 2
        assert header_length_for(fields) == 32 + 64 + 1


class TestFieldStrings:
    """Tests for the descriptive string form."""

    def test_parse_field_string(self):
        f = parse_field_string("PRICE,N,10,2")
        assert f == FieldDefinition("PRICE", FieldType.NUMERIC, 10, 2)

    def test_parse_fields_string(self):
        fields = parse_fields_string("NAME,C,20,0|PRICE,N,10,2|")
        assert [f.name for f in fields] == ["NAME", "PRICE"]

    def test_round_trip(self):
        text = "NAME,C,20,0|BORN,D,8,0|PRICE,N,10,2"
        assert fields_to_string(parse_fields_string(text)) == text

    @pytest.mark.parametrize("text", [
        "NAME,C,20",
        "NAME,C,twenty,0",
        ",C,20,0",
        "NAME,Z,20,0",
        "NAME,C,300,0",
    ])
    def test_malformed(self, text):
        with pytest.raises(FieldDefinitionError):
            parse_field_string(text)

    def test_malformed_is_usage_error(self):
        with pytest.raises(DBFUsageError):
            parse_fields_string("NAME")
