import re
import argparse
from dataclasses import dataclass
from urllib.parse import quote

from qr_constants import (
    TAG_PAYLOAD_FORMAT, TAG_POINT_OF_INITIATION, TAG_MERCHANT_ACCOUNT,
    TAG_CURRENCY, TAG_AMOUNT, TAG_COUNTRY,
    SUBTAG_GUID, SUBTAG_MOBILE, SUBTAG_NATIONAL_ID,
    PAYLOAD_FORMAT_INDICATOR, POINT_OF_INITIATION, PROMPTPAY_GUID,
    CURRENCY_THB, COUNTRY_TH,
    MOBILE_PREFIX, MOBILE_MIN_DIGITS, MOBILE_MAX_DIGITS,
    TLV_MAX_VALUE_LENGTH, CRC_INITIAL, CRC_POLYNOMIAL, CRC_PLACEHOLDER,
    QR_RENDER_BASE_URL,
)

# --- CONFIGURATION ---
QR_TEXT_FILE = "qrcode.txt"

NON_DIGITS = re.compile(r"[^0-9]")

# --- RECIPIENT IDENTIFIERS ---
@dataclass(frozen=True)
class Mobile:
    """Mobile number: trunk zero removed, '0066' prepended."""
    digits: str
    sub_tag = SUBTAG_MOBILE

@dataclass(frozen=True)
class NationalId:
    """National ID / tax ID: digits only, as supplied."""
    digits: str
    sub_tag = SUBTAG_NATIONAL_ID

def classify_recipient(raw):
    """
    Decides whether the input is a mobile number or a national ID and
    normalizes it. 9-10 digits is a mobile number, anything else is treated
    as a national ID (no rejection happens here).
    """
    digits = NON_DIGITS.sub("", raw or "")
    if MOBILE_MIN_DIGITS <= len(digits) <= MOBILE_MAX_DIGITS:
        if digits.startswith("0"):
            digits = digits[1:]
        return Mobile(MOBILE_PREFIX + digits)
    return NationalId(digits)

# --- ENCODING ---
def tlv(tag, value):
    """Encodes a single EMV field as tag + 2-digit length + value."""
    if len(tag) != 2:
        raise ValueError(f"TLV tag must be exactly 2 characters, got {tag!r}")
    if len(value) > TLV_MAX_VALUE_LENGTH:
        raise ValueError(
            f"TLV value for tag {tag} is {len(value)} characters (max {TLV_MAX_VALUE_LENGTH})"
        )
    return f"{tag}{len(value):02}{value}"

def calculate_crc(data_string):
    """Calculates the CRC-16/CCITT-FALSE (0xFFFF, 0x1021) for EMV QR."""
    crc = CRC_INITIAL
    data_bytes = data_string.encode('utf-8')

    for byte in data_bytes:
        crc ^= (byte << 8)
        for _ in range(8):
            if (crc & 0x8000):
                crc = (crc << 1) ^ CRC_POLYNOMIAL
            else:
                crc = crc << 1
            crc &= 0xFFFF
    return f"{crc:04X}"

def format_amount(amount):
    """Returns the Tag 54 value, or None when no positive amount was given."""
    if amount is None or amount <= 0:
        return None
    return f"{amount:.2f}"

def format_promptpay_qr(recipient, amount=None):
    """Constructs the PromptPay EMV QR Content String."""
    if not isinstance(recipient, (Mobile, NationalId)):
        recipient = classify_recipient(recipient)

    # Tag 29 nests the scheme GUID and the recipient (01 mobile, 02 national ID).
    tag_29_val = tlv(SUBTAG_GUID, PROMPTPAY_GUID) + tlv(recipient.sub_tag, recipient.digits)

    data = [
        tlv(TAG_PAYLOAD_FORMAT, PAYLOAD_FORMAT_INDICATOR),
        tlv(TAG_POINT_OF_INITIATION, POINT_OF_INITIATION),
        tlv(TAG_MERCHANT_ACCOUNT, tag_29_val),
        tlv(TAG_CURRENCY, CURRENCY_THB),
        tlv(TAG_COUNTRY, COUNTRY_TH),
    ]

    amt_decimal = format_amount(amount)
    if amt_decimal is not None:
        data.append(tlv(TAG_AMOUNT, amt_decimal))

    raw_str = "".join(data) + CRC_PLACEHOLDER
    return raw_str + calculate_crc(raw_str)

def build_qrcode_url(payload, base_url=QR_RENDER_BASE_URL):
    """Embeds the payload as the 'chl' parameter of the external renderer URL."""
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}chl={quote(payload, safe='')}"

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="PromptPay QR Payload Generator")
    parser.add_argument("recipient", help="Mobile number or national ID of the recipient")
    parser.add_argument("--amount", type=float, help="Optional amount in THB")
    parser.add_argument("--render-url", default=QR_RENDER_BASE_URL, help="Base URL of the QR image renderer")
    parser.add_argument("--output", default=QR_TEXT_FILE, help="File to save the raw payload to")
    args = parser.parse_args()

    recipient = classify_recipient(args.recipient)
    print(f"[*] Recipient classified as {type(recipient).__name__}: {recipient.digits}")

    try:
        emv_qr_string = format_promptpay_qr(recipient, args.amount)
    except ValueError as e:
        print(f"[!] Error: {e}")
        exit(1)

    with open(args.output, "w") as f:
        f.write(emv_qr_string)
    print(f"[*] Raw QR string saved to '{args.output}'.")
    print(f"[*] Payload: {emv_qr_string}")
    print(f"[*] Render URL: {build_qrcode_url(emv_qr_string, args.render_url)}")
