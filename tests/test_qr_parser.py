"""
Tests for qr_parser: TLV walking, field validation and payload verification.
"""
import pytest

from qr_generator import calculate_crc, format_promptpay_qr
from qr_parser import (
    PayloadError,
    consumed_length,
    parse_tlv,
    validate_field,
    verify_payload,
)


def with_crc(prefix):
    return prefix + calculate_crc(prefix)


class TestParseTlv:
    def test_structural_round_trip_with_amount(self):
        payload = format_promptpay_qr("0812345678", 100)
        fields = parse_tlv(payload)

        assert [f["tag"] for f in fields] == ["00", "01", "29", "53", "58", "54", "63"]
        assert [f["value"] for f in fields[:2]] == ["01", "11"]
        assert fields[3]["value"] == "764"
        assert fields[4]["value"] == "TH"
        assert fields[5]["value"] == "100.00"
        assert fields[6]["value"] == payload[-4:]
        assert consumed_length(fields) == len(payload)

    def test_structural_round_trip_without_amount(self):
        payload = format_promptpay_qr("1234567890123")
        fields = parse_tlv(payload)

        assert [f["tag"] for f in fields] == ["00", "01", "29", "53", "58", "63"]
        assert consumed_length(fields) == len(payload)

    def test_merchant_account_sub_fields(self):
        payload = format_promptpay_qr("0812345678")
        tag_29 = next(f for f in parse_tlv(payload) if f["tag"] == "29")
        subfields = parse_tlv(tag_29["value"], parent_tag="29")

        assert [(s["tag"], s["value"]) for s in subfields] == [
            ("00", "A000000677010111"),
            ("01", "0066812345678"),
        ]
        assert all(s["is_valid"] for s in subfields)

    def test_stops_at_truncated_header(self):
        fields = parse_tlv("000201AB")
        assert len(fields) == 1
        assert consumed_length(fields) == 6

    @pytest.mark.parametrize("data", ["00AB01", "00\u00b2\u00b3abc"])
    def test_stops_at_non_numeric_length(self, data):
        fields = parse_tlv("000201" + data)
        assert [f["tag"] for f in fields] == ["00"]
        assert consumed_length(fields) == 6

    def test_non_numeric_length_fails_verification(self):
        with pytest.raises(PayloadError):
            verify_payload(with_crc("000201" + "01\u00b2\u00b311" + "6304"))

    def test_flags_truncated_value(self):
        fields = parse_tlv("00051")
        assert fields[0]["is_valid"] is False
        assert "Truncated" in fields[0]["validation_msg"]


class TestValidateField:
    def test_unknown_tag_passes(self):
        assert validate_field("99", "anything") == (True, "N/A")

    def test_point_of_initiation(self):
        assert validate_field("01", "11")[0]
        assert not validate_field("01", "13")[0]

    def test_amount_format(self):
        assert validate_field("54", "100.00")[0]
        assert not validate_field("54", "100")[0]

    def test_guid_must_match(self):
        assert validate_field("00", "A000000677010111", parent_tag="29")[0]
        assert not validate_field("00", "A000000677010112", parent_tag="29")[0]

    def test_mobile_sub_field(self):
        assert validate_field("01", "0066812345678", parent_tag="29")[0]
        assert not validate_field("01", "0812345678", parent_tag="29")[0]


class TestVerifyPayload:
    @pytest.mark.parametrize("recipient,amount", [
        ("0812345678", 100),
        ("0812345678", None),
        ("812345678", 0.5),
        ("1234567890123", 2500.75),
        ("12345", None),
        ("", None),
    ])
    def test_generated_payloads_verify(self, recipient, amount):
        payload = format_promptpay_qr(recipient, amount)
        fields = verify_payload(payload)
        assert fields[-1]["tag"] == "63"

    def test_corrupted_checksum(self):
        payload = format_promptpay_qr("0812345678", 100)
        last = "0" if payload[-1] != "0" else "1"
        with pytest.raises(PayloadError, match="CRC Mismatch"):
            verify_payload(payload[:-1] + last)

    def test_altered_amount_breaks_checksum(self):
        payload = format_promptpay_qr("0812345678", 100)
        with pytest.raises(PayloadError, match="CRC Mismatch"):
            verify_payload(payload.replace("100.00", "900.00"))

    def test_missing_crc_field(self):
        with pytest.raises(PayloadError, match="6304"):
            verify_payload("000201010211")

    def test_broken_structure_with_valid_checksum(self):
        with pytest.raises(PayloadError):
            verify_payload(with_crc("0002010" + "6304"))

    def test_invalid_field_with_valid_checksum(self):
        with pytest.raises(PayloadError, match="Tag 58"):
            verify_payload(with_crc("000201" + "5802US" + "6304"))

    def test_invalid_sub_field_with_valid_checksum(self):
        tag_29 = "0016A000000677010112" + "01130066812345678"
        with pytest.raises(PayloadError, match="Tag 29.00"):
            verify_payload(with_crc("000201" + "29" + f"{len(tag_29):02}" + tag_29 + "6304"))
