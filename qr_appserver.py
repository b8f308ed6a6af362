# Developed in Jan 2026, author carlos.netto@gmail.com.
# Purpose: HTTP front end that turns a mobile number or national ID into a
# PromptPay QR payload and a link to an external QR image renderer.

import os
import math
import argparse
from functools import lru_cache
import yaml
from flask import Flask, request, jsonify
from flask_cors import CORS
from jsonschema import Draft7Validator
import referencing
from referencing.jsonschema import DRAFT7

from qr_constants import TAG_MERCHANT_ACCOUNT, QR_RENDER_BASE_URL
from qr_generator import classify_recipient, format_promptpay_qr, build_qrcode_url
from qr_parser import PayloadError, parse_tlv, verify_payload

app = Flask(__name__)
CORS(app)
PORT = 5010
HOST = "127.0.0.1"
app.config["QR_RENDER_BASE_URL"] = QR_RENDER_BASE_URL

# --- Helper Functions ---

SCHEMA_PATH = os.path.join(os.path.dirname(__file__), "schema", "openapi.yaml")
SCHEMA_URI = "http://promptpay/openapi.yaml"

@lru_cache(maxsize=1)
def load_schema_registry():
    """Loads schema/openapi.yaml once. Returns None when the file is not shipped."""
    if not os.path.exists(SCHEMA_PATH):
        return None
    with open(SCHEMA_PATH, 'r') as f:
        schema_doc = yaml.safe_load(f)
    resource = referencing.Resource.from_contents(schema_doc, default_specification=DRAFT7)
    return referencing.Registry().with_resource(uri=SCHEMA_URI, resource=resource)

def validate_against_schema(data, schema_name):
    """Validates JSON against the bundled OpenAPI document. Reports mismatches, never rejects."""
    registry = load_schema_registry()
    if registry is None:
        return False

    target_schema = {"$ref": f"{SCHEMA_URI}#/components/schemas/{schema_name}"}
    try:
        Draft7Validator(
            target_schema,
            registry=registry,
            format_checker=Draft7Validator.FORMAT_CHECKER,
        ).validate(data)
        print(f"QR_APPSERVER: [OK] JSON validated against {schema_name}")
        return True
    except Exception as e:
        print(f"QR_APPSERVER: [!] Schema Validation Error ({schema_name}): {e}")
        return False

def read_amount(data):
    """Returns (amount, error). Missing or null amounts come back as None."""
    amount = data.get("amount")
    if amount is None:
        return None, None
    if isinstance(amount, bool) or not isinstance(amount, (int, float)) or not math.isfinite(amount):
        return None, "invalid_amount"
    return amount, None

@app.route('/generate', methods=['POST'])
def generate_qr():
    """
    Receives {"phoneOrId": ..., "amount": ...}, builds the PromptPay payload
    and returns it together with the renderer URL.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}

    phone_or_id = data.get("phoneOrId")
    if not isinstance(phone_or_id, str) or not phone_or_id.strip():
        print("QR_APPSERVER: [!] Rejected request without phoneOrId")
        return jsonify({"error": "phoneOrId_required"}), 400

    amount, amount_error = read_amount(data)
    if amount_error:
        print(f"QR_APPSERVER: [!] Rejected request with amount {data.get('amount')!r}")
        return jsonify({"error": amount_error}), 400

    validate_against_schema(data, "QrRequest")
    print("QR_APPSERVER: [*] Received QR generation request")

    try:
        recipient = classify_recipient(phone_or_id)
        print(f"QR_APPSERVER: [*] Recipient classified as {type(recipient).__name__}")

        payload = format_promptpay_qr(recipient, amount)
        # A payload that a scanner would reject is never handed out.
        verify_payload(payload)

        result = {
            "success": True,
            "payload": payload,
            "qrcodeUrl": build_qrcode_url(payload, app.config["QR_RENDER_BASE_URL"]),
        }
    except Exception as e:
        print(f"QR_APPSERVER: [!] Exception: {e}")
        return jsonify({"error": "internal_error", "details": str(e)}), 500

    print(f"QR_APPSERVER: [*] Generated payload: {payload}")
    validate_against_schema(result, "QrResponse")
    return jsonify(result)

@app.route('/parse', methods=['POST'])
def parse_qr():
    """Splits a payload into its TLV fields (Tag 29 expanded) and checks the CRC."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not isinstance(data.get("payload"), str) or not data["payload"].strip():
        return jsonify({"error": "payload_required"}), 400

    qr_content = data["payload"].strip()
    print("QR_APPSERVER: [*] Received Parse Request for QR content")

    fields = parse_tlv(qr_content)
    for field in fields:
        if field["tag"] == TAG_MERCHANT_ACCOUNT:
            field["subfields"] = parse_tlv(field["value"], parent_tag=TAG_MERCHANT_ACCOUNT)

    result = {"valid": True, "fields": fields}
    try:
        verify_payload(qr_content)
    except PayloadError as e:
        print(f"QR_APPSERVER: [!] Invalid QR content: {e}")
        result["valid"] = False
        result["error"] = str(e)

    validate_against_schema(result, "ParseResponse")
    return jsonify(result)

@app.route('/health', methods=['GET'])
def health():
    return jsonify({"status": "ok"})

if __name__ == '__main__':
    parser = argparse.ArgumentParser(description="PromptPay QR App Server")
    parser.add_argument("--port", type=int, default=PORT, help="Port to listen on.")
    parser.add_argument("--render-url", default=QR_RENDER_BASE_URL, help="Base URL of the external QR image renderer.")
    args = parser.parse_args()
    app.config["QR_RENDER_BASE_URL"] = args.render_url

    print(f"QR_APPSERVER: Starting App Server on port {args.port}...")
    app.run(host=HOST, port=args.port)
