"""
Catalog seeding script
Pushes a JSON array of CMS hotel documents to POST /catalog/ingest in
batches, the way the CMS export job does

Usage:
    python scripts/seed_catalog.py [path/to/hotels.json]
"""

import json
import os
import sys

import httpx
from dotenv import load_dotenv

load_dotenv()

BASE_URL = os.getenv("CONCIERGE_URL", "http://localhost:8000")
SHARED_SECRET = os.getenv("REINDEX_SHARED_SECRET", "")
BATCH_SIZE = int(os.getenv("SEED_BATCH_SIZE", "50"))
DEFAULT_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "data", "sample_hotels.json")


def load_hotels(path):
    with open(path, "r", encoding="utf-8") as f:
        hotels = json.load(f)
    if not isinstance(hotels, list):
        raise ValueError(f"{path} must contain a JSON array of hotels")
    print(f"Loaded {len(hotels)} hotels from {path}")
    return hotels


def seed(hotels):
    headers = {"x-reindex-secret": SHARED_SECRET} if SHARED_SECRET else {}
    totals = {"received": 0, "indexed": 0, "skipped": 0, "warnings": 0}

    with httpx.Client(base_url=BASE_URL, headers=headers, timeout=120.0) as client:
        for start in range(0, len(hotels), BATCH_SIZE):
            batch = hotels[start:start + BATCH_SIZE]
            response = client.post("/catalog/ingest", json={"hotels": batch})
            if response.status_code != 200:
                print(f"Batch {start // BATCH_SIZE + 1} failed: {response.status_code} {response.text[:200]}")
                continue
            result = response.json()
            for key in ("received", "indexed", "skipped"):
                totals[key] += result[key]
            totals["warnings"] += len(result["warnings"])
            for warning in result["warnings"][:5]:
                print(f"  warning: {warning}")
            print(f"Batch {start // BATCH_SIZE + 1}: indexed {result['indexed']}, skipped {result['skipped']}")

    return totals


def main():
    path = sys.argv[1] if len(sys.argv) > 1 else DEFAULT_PATH
    print("=" * 50)
    print("Hotel Concierge AI - Catalog Seed")
    print("=" * 50)

    try:
        hotels = load_hotels(path)
    except (OSError, ValueError) as e:
        print(f"Cannot read catalog: {e}")
        sys.exit(1)

    try:
        totals = seed(hotels)
    except httpx.HTTPError as e:
        print(f"Service unreachable at {BASE_URL}: {e}")
        sys.exit(1)

    print("\n=== Seed Complete ===")
    print(f"Received: {totals['received']}")
    print(f"Indexed:  {totals['indexed']}")
    print(f"Skipped:  {totals['skipped']}")
    print(f"Warnings: {totals['warnings']}")


if __name__ == "__main__":
    main()
