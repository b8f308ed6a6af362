# Developed in Jan 2026, author carlos.netto@gmail.com.
# Purpose: Parse and validate PromptPay EMV QR content produced by qr_generator.py.

import os
import re
import argparse

from qr_constants import (
    TAG_MERCHANT_ACCOUNT, TAG_CRC, CRC_PLACEHOLDER, PROMPTPAY_GUID,
)
from qr_generator import calculate_crc

# --- CONFIGURATION ---
QR_TEXT_FILE = "qrcode.txt"

class PayloadError(ValueError):
    """Raised when QR content is structurally invalid or fails its checksum."""

# EMV Tag Definitions and Basic Validation Rules
TAG_INFO = {
    "00": {"desc": "Payload Format Indicator", "min_len": 2, "max_len": 2, "pattern": r"^01$"},
    "01": {"desc": "Point of Initiation Method", "min_len": 2, "max_len": 2, "pattern": r"^(11|12)$"},
    "29": {"desc": "Merchant Account Information (PromptPay)", "min_len": 1, "max_len": 99},
    "53": {"desc": "Transaction Currency", "min_len": 3, "max_len": 3, "pattern": r"^764$"},
    "54": {"desc": "Transaction Amount", "min_len": 1, "max_len": 13, "pattern": r"^\d+\.\d{2}$"},
    "58": {"desc": "Country Code", "min_len": 2, "max_len": 2, "pattern": r"^TH$"},
    "63": {"desc": "CRC", "min_len": 4, "max_len": 4, "pattern": r"^[0-9A-F]{4}$"}
}

SUBTAG_INFO = {
    "29": {
        "00": {"desc": "Application ID (GUID)", "pattern": rf"^{PROMPTPAY_GUID}$"},
        "01": {"desc": "Mobile Number", "min_len": 12, "max_len": 14, "pattern": r"^0066\d{8,10}$"},
        "02": {"desc": "National ID / Tax ID", "min_len": 0, "max_len": 99, "pattern": r"^\d*$"}
    }
}

def validate_field(tag, value, parent_tag=None):
    """Validates the value against EMV/PromptPay constraints."""
    info = None
    if parent_tag and parent_tag in SUBTAG_INFO:
        info = SUBTAG_INFO[parent_tag].get(tag)
    else:
        info = TAG_INFO.get(tag)

    if not info:
        return True, "N/A"

    # Check length constraints
    if "min_len" in info and len(value) < info["min_len"]:
        return False, f"ERR: Too short (min {info['min_len']})"
    if "max_len" in info and len(value) > info["max_len"]:
        return False, f"ERR: Too long (max {info['max_len']})"

    # Check pattern
    if "pattern" in info and not re.match(info["pattern"], value):
        return False, "ERR: Format mismatch"

    return True, "OK"

def parse_tlv(data, parent_tag=None):
    """Parses EMV TLV data and returns a list of field dictionaries."""
    results = []
    i = 0
    while i < len(data):
        if i + 4 > len(data):
            break
        tag = data[i:i+2]
        length_str = data[i+2:i+4]
        # Lengths are two ASCII digits; '²³' passes isdigit() but not int()
        if not (length_str.isascii() and length_str.isdigit()):
            break
        try:
            length = int(length_str)
        except ValueError:
            break

        value = data[i+4:i+4+length]

        desc = ""
        if parent_tag and parent_tag in SUBTAG_INFO:
            desc = SUBTAG_INFO[parent_tag].get(tag, {}).get("desc", "Unknown Subtag")
        else:
            desc = TAG_INFO.get(tag, {}).get("desc", "Unknown Tag")

        is_valid, msg = validate_field(tag, value, parent_tag)
        if len(value) < length:
            is_valid, msg = False, f"ERR: Truncated (expected {length})"

        results.append({
            "tag": tag,
            "length": length,
            "value": value,
            "description": desc,
            "is_valid": is_valid,
            "validation_msg": msg
        })

        i += 4 + length
    return results

def consumed_length(fields):
    return sum(4 + len(field["value"]) for field in fields)

def verify_payload(qr_content):
    """
    Checks the CRC, walks the TLV structure end to end and validates every
    field including the Tag 29 sub-fields. Returns the top-level fields and
    raises PayloadError on the first problem found.
    """
    if len(qr_content) < 8 or qr_content[-8:-4] != CRC_PLACEHOLDER:
        raise PayloadError(f"CRC tag ({CRC_PLACEHOLDER}) not found at the expected position.")

    calculated_crc = calculate_crc(qr_content[:-4])
    if calculated_crc != qr_content[-4:]:
        raise PayloadError(f"CRC Mismatch: Calculated {calculated_crc}, Found {qr_content[-4:]}")

    fields = parse_tlv(qr_content)
    if consumed_length(fields) != len(qr_content):
        raise PayloadError(f"Leftover data after position {consumed_length(fields)}.")
    if [f["tag"] for f in fields].count(TAG_CRC) != 1:
        raise PayloadError("Exactly one CRC field is required.")

    for field in fields:
        if not field["is_valid"]:
            raise PayloadError(f"Tag {field['tag']}: {field['validation_msg']}")
        if field["tag"] == TAG_MERCHANT_ACCOUNT:
            subfields = parse_tlv(field["value"], parent_tag=TAG_MERCHANT_ACCOUNT)
            if consumed_length(subfields) != len(field["value"]):
                raise PayloadError("Leftover data inside Tag 29.")
            for sub in subfields:
                if not sub["is_valid"]:
                    raise PayloadError(f"Tag 29.{sub['tag']}: {sub['validation_msg']}")
    return fields

def main():
    parser = argparse.ArgumentParser(description="PromptPay EMV QR Parser")
    parser.add_argument("file", nargs="?", default=QR_TEXT_FILE, help="File containing the raw QR content")
    args = parser.parse_args()

    if not os.path.exists(args.file):
        print(f"[!] Error: {args.file} not found. Run qr_generator.py first.")
        return

    with open(args.file, "r") as f:
        qr_content = f.read().strip()

    print("="*110)
    print("EMV QR PARSER - PROMPTPAY VALIDATOR")
    print("="*110)
    print(f"Raw Content: {qr_content}\n")

    # 1. Structural and CRC Validation
    try:
        verify_payload(qr_content)
        print(f"[OK] CRC-16/CCITT-FALSE Valid: {qr_content[-4:]}")
    except PayloadError as e:
        print(f"[!] {e}")

    # 2. Field Parsing and Display
    fields = parse_tlv(qr_content)

    print(f"\n{'TAG':3}.  | {'LEN':3} | {'VALID':12} | {'DESCRIPTION':40} | {'VALUE'}")
    print("-" * 110)

    for field in fields:
        status = "[OK]" if field['is_valid'] else f"[{field['validation_msg']}]"
        print(f"{field['tag']:3}   | {field['length']:02}  | {status:12} | {field['description']:40} | {field['value']}")

        # Handle nested tags for Tag 29 (Merchant Account Information)
        if field['tag'] == TAG_MERCHANT_ACCOUNT:
            subfields = parse_tlv(field['value'], parent_tag=TAG_MERCHANT_ACCOUNT)
            for sub in subfields:
                sub_status = "[OK]" if sub['is_valid'] else f"[{sub['validation_msg']}]"
                print(f"29.{sub['tag']:2} | {sub['length']:02}  | {sub_status:12} | {sub['description']:40} | {sub['value']}")

    print("="*110)

if __name__ == "__main__":
    main()
