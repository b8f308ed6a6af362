# Developed in Jan 2026, author carlos.netto@gmail.com.
# Purpose: Fixed values of the PromptPay EMV QR payload, kept in one place
# so the encoder can be audited against the published field layout.

# --- EMV TAGS ---
TAG_PAYLOAD_FORMAT = "00"
TAG_POINT_OF_INITIATION = "01"
TAG_MERCHANT_ACCOUNT = "29"
TAG_CURRENCY = "53"
TAG_AMOUNT = "54"
TAG_COUNTRY = "58"
TAG_CRC = "63"

# Sub-tags inside Tag 29 (Merchant Account Information)
SUBTAG_GUID = "00"
SUBTAG_MOBILE = "01"
SUBTAG_NATIONAL_ID = "02"

# --- FIELD VALUES ---
PAYLOAD_FORMAT_INDICATOR = "01"
POINT_OF_INITIATION = "11"
PROMPTPAY_GUID = "A000000677010111"
CURRENCY_THB = "764"
COUNTRY_TH = "TH"

# --- RECIPIENT RULES ---
MOBILE_PREFIX = "0066"
MOBILE_MIN_DIGITS = 9
MOBILE_MAX_DIGITS = 10

# --- TLV / CRC ---
TLV_MAX_VALUE_LENGTH = 99
CRC_INITIAL = 0xFFFF
CRC_POLYNOMIAL = 0x1021
# Tag 63 with length 04, appended before the checksum is computed.
CRC_PLACEHOLDER = TAG_CRC + "04"

# --- RENDERING ---
# External QR image renderer. The payload goes into the 'chl' query parameter.
QR_RENDER_BASE_URL = "https://chart.googleapis.com/chart?cht=qr&chs=300x300"
