"""
Latency check for the chat endpoint
Replays greetings, hotel searches and general questions in one session,
then repeats a search to measure the cache hit path.

Usage:
    python scripts/latency_check.py [base_url]
"""

import asyncio
import os
import sys
import time

import httpx
import numpy as np

BASE_URL = sys.argv[1] if len(sys.argv) > 1 else os.getenv("CONCIERGE_URL", "http://localhost:8000")

TEST_QUERIES = [
    ("Hello", "QUICK"),
    ("Hi!", "QUICK"),
    ("Hotels in Cancun", "HOTEL_SEARCH"),
    ("Best beach resorts in Playa del Carmen", "HOTEL_SEARCH"),
    ("What's the weather like in Mexico?", "GENERAL"),
    ("Tell me about Mexican food", "GENERAL"),
    ("Luxury hotels in Tulum with spa", "HOTEL_SEARCH"),
    ("Budget accommodations in Puerto Vallarta", "HOTEL_SEARCH"),
]

CACHE_QUERY = "Hotels in Cancun"


async def timed_chat(client: httpx.AsyncClient, query: str, session_id=None):
    start = time.time()
    response = await client.post(f"{BASE_URL}/chat", json={"query": query, "sessionId": session_id})
    latency = (time.time() - start) * 1000
    response.raise_for_status()
    return response.json(), latency


async def run_latency_check():
    print(f"🚀 Starting latency check against {BASE_URL}...\n")
    results = []
    session_id = None

    async with httpx.AsyncClient(timeout=30.0) as client:
        for query, expected in TEST_QUERIES:
            print(f'Testing: "{query}"')
            try:
                body, latency = await timed_chat(client, query, session_id)
            except httpx.HTTPError as e:
                print(f"❌ Error: {e}\n")
                results.append({"query": query, "success": False})
                continue

            session_id = session_id or body.get("sessionId")
            intent = body.get("intent")
            marker = "✅" if intent == expected else "⚠️ "
            print(f"{marker} {latency:.0f}ms (server {body.get('responseTimeMs')}ms), intent={intent}, hotels={len(body.get('hotels', []))}")
            print(f"   {body.get('message', '')[:100]}...\n")
            results.append({"query": query, "success": True, "latency": latency, "expected": expected, "intent": intent})
            await asyncio.sleep(0.5)

        print("📊 Cache check...\n")
        print(f'Repeating query: "{CACHE_QUERY}"')
        body, cached_latency = await timed_chat(client, CACHE_QUERY, session_id)
        print(f"   {cached_latency:.0f}ms, cached={body.get('cached')}\n")

    ok = [r for r in results if r["success"]]
    print("=== Summary ===")
    print(f"Requests:     {len(results)} ({len(results) - len(ok)} failed)")
    if ok:
        latencies = np.array([r["latency"] for r in ok])
        print(f"Avg latency:  {latencies.mean():.0f} ms")
        print(f"p95 latency:  {np.percentile(latencies, 95):.0f} ms")
        mismatched = [r["query"] for r in ok if r["intent"] != r["expected"]]
        print(f"Intent match: {len(ok) - len(mismatched)}/{len(ok)}")
        for query in mismatched:
            print(f"   unexpected intent for: {query}")
    print(f"Cache hit:    {cached_latency:.0f} ms")


if __name__ == "__main__":
    asyncio.run(run_latency_check())
