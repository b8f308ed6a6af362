# Developed in Jan 2026, author carlos.netto@gmail.com.
# Purpose: Command line client for qr_appserver.py.

import argparse
import requests
import json
import os

PORT = 5010
HOST = "127.0.0.1"
BASE_URL = f"http://{HOST}:{PORT}"

def print_response(response):
    print(f"QR_APPCLIENT: [*] Status Code: {response.status_code}")
    try:
        resp_json = response.json()
        print("QR_APPCLIENT: [*] Response Body:")
        print(json.dumps(resp_json, indent=4))
    except ValueError:
        print("QR_APPCLIENT: [*] Response Body (Text):")
        print(response.text)

def request_generate(phone_or_id, amount=None, base_url=BASE_URL):
    url = f"{base_url}/generate"
    data = {"phoneOrId": phone_or_id}
    if amount is not None:
        data["amount"] = amount

    print(f"QR_APPCLIENT: [*] Sending POST request to {url}")
    try:
        response = requests.post(url, json=data, timeout=10)
        print_response(response)
        return response
    except requests.exceptions.ConnectionError:
        print(f"QR_APPCLIENT: [!] Error: Could not connect to {url}. Is qr_appserver.py running?")
    except requests.exceptions.RequestException as e:
        print(f"QR_APPCLIENT: [!] Error during request: {e}")
    return None

def request_parse(qr_input, base_url=BASE_URL):
    # Accept either a file produced by qr_generator.py or the raw string
    if os.path.exists(qr_input):
        with open(qr_input, 'r') as f:
            qr_content = f.read().strip()
        print(f"QR_APPCLIENT: [*] Loaded QR content from file: {qr_input}")
    else:
        qr_content = qr_input
        print("QR_APPCLIENT: [*] Using provided QR content string")

    url = f"{base_url}/parse"
    print(f"QR_APPCLIENT: [*] Sending POST request to {url}")
    try:
        response = requests.post(url, json={"payload": qr_content}, timeout=10)
        print_response(response)
        return response
    except requests.exceptions.ConnectionError:
        print(f"QR_APPCLIENT: [!] Error: Could not connect to {url}. Is qr_appserver.py running?")
    except requests.exceptions.RequestException as e:
        print(f"QR_APPCLIENT: [!] Error during request: {e}")
    return None

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Client utility for the PromptPay QR App Server")
    parser.add_argument("--generate", metavar="PHONE_OR_ID", help="Mobile number or national ID to build a payload for")
    parser.add_argument("--amount", type=float, help="Optional amount in THB (used with --generate)")
    parser.add_argument("--parse", metavar="PAYLOAD", help="QR content string or path to a file containing it")
    parser.add_argument("--base-url", default=BASE_URL, help="Base URL of qr_appserver.py")

    args = parser.parse_args()

    if args.generate:
        request_generate(args.generate, args.amount, args.base_url)
    elif args.parse:
        request_parse(args.parse, args.base_url)
    else:
        parser.print_help()
