"""
Send a CMS-style webhook to the local service

Signs the body with WEBHOOK_SIGNING_SECRET when set, otherwise sends the
REINDEX_SHARED_SECRET header.

Usage:
    python scripts/send_signed_webhook.py [url] [hotel-id ...]
"""

import json
import os
import sys

import httpx
from dotenv import load_dotenv

from hotel_ai.catalog.reindex import SHARED_SECRET_HEADER, compute_signature

load_dotenv()

DEFAULT_URL = os.getenv("WEBHOOK_TEST_URL", "http://localhost:8000/catalog/webhook")


def main():
    url = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_URL
    ids = sys.argv[2:] or ["hotel-001", "hotel-002"]
    body = json.dumps({"ids": ids}).encode("utf-8")

    headers = {"Content-Type": "application/json"}
    signing_secret = os.getenv("WEBHOOK_SIGNING_SECRET", "")
    shared_secret = os.getenv("REINDEX_SHARED_SECRET", "")
    if signing_secret:
        headers["sanity-signature"] = compute_signature(body, signing_secret)
    elif shared_secret:
        headers[SHARED_SECRET_HEADER] = shared_secret

    try:
        response = httpx.post(url, content=body, headers=headers, timeout=30.0)
    except httpx.HTTPError as e:
        print(f"error {e}")
        sys.exit(1)

    print("status", response.status_code)
    print(response.text)


if __name__ == "__main__":
    main()
