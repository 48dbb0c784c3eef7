"""Sign a JSON event with the webhook secret and post it to the service.

Useful for exercising the webhook route locally without the provider CLI.
"""

import argparse
import hashlib
import hmac
import json
import time
from pathlib import Path

import httpx


def sign(payload: bytes, secret: str, timestamp: int | None = None) -> str:
    """Build a `t=...,v1=...` signature header for `payload`."""

    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.".encode("utf-8") + payload
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def main() -> None:
    """Parse CLI args and post one signed event."""

    parser = argparse.ArgumentParser(description="Post a signed webhook event.")
    parser.add_argument("--base-url", default="http://localhost:3009")
    parser.add_argument("--secret", required=True, help="Webhook signing secret")
    parser.add_argument("--json", dest="json_inline", default=None, help="Inline JSON event")
    parser.add_argument("--file", dest="json_file", default=None, help="Path to JSON event file")
    args = parser.parse_args()

    if bool(args.json_inline) == bool(args.json_file):
        raise SystemExit("Provide exactly one of --json or --file")

    if args.json_inline:
        event = json.loads(args.json_inline)
    else:
        event = json.loads(Path(args.json_file).read_text())

    payload = json.dumps(event).encode("utf-8")
    resp = httpx.post(
        f"{args.base_url}/api/payments/webhooks",
        content=payload,
        headers={"content-type": "application/json", "stripe-signature": sign(payload, args.secret)},
    )
    print(f"status={resp.status_code} body={resp.text}")


if __name__ == "__main__":
    main()
