"""Drive concurrent payment-intent creations against a running service.

Reports status-code counts and latency quantiles. Point it at a service
configured with Stripe test keys; 429s show where the rate limiter kicks in.
"""

import argparse
import asyncio
import random
import statistics
import time
from collections import Counter

import httpx


CURRENCIES = ["usd", "eur", "gbp"]


def random_intent() -> dict:
    return {
        "amount": random.randint(100, 250000),
        "currency": random.choice(CURRENCIES),
        "payment_method_types": ["card"],
        "metadata": {"source": "load_test"},
    }


async def timed_create(client: httpx.AsyncClient, sem: asyncio.Semaphore) -> tuple[int, float]:
    """POST one intent; transport failures are counted as status 0."""

    async with sem:
        started = time.perf_counter()
        try:
            resp = await client.post("/api/payments/payment-intents", json=random_intent())
            status = resp.status_code
        except httpx.HTTPError:
            status = 0
        return status, (time.perf_counter() - started) * 1000


def report(results: list[tuple[int, float]]) -> None:
    statuses = Counter(status for status, _ in results)
    latencies = [ms for _, ms in results]
    for status, count in sorted(statuses.items()):
        label = "transport_error" if status == 0 else str(status)
        print(f"status_{label}={count}")
    if len(latencies) >= 2:
        cuts = statistics.quantiles(latencies, n=100)
        print(f"p50_ms={cuts[49]:.2f} p95_ms={cuts[94]:.2f} p99_ms={cuts[98]:.2f}")
    print(f"mean_ms={statistics.fmean(latencies):.2f} max_ms={max(latencies):.2f}")


async def main(total: int, concurrency: int, base_url: str) -> None:
    sem = asyncio.Semaphore(concurrency)
    async with httpx.AsyncClient(base_url=base_url, timeout=10.0) as client:
        results = await asyncio.gather(*(timed_create(client, sem) for _ in range(total)))
    report(results)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--total", type=int, default=200)
    parser.add_argument("--concurrency", type=int, default=20)
    parser.add_argument("--base-url", default="http://localhost:3009")
    args = parser.parse_args()
    asyncio.run(main(args.total, args.concurrency, args.base_url))
