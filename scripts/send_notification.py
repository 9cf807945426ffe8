"""Post a signed Midtrans-style notification to the webhook endpoint.

Useful for manual redelivery and duplicate-notification testing against a
sandbox order. The webhook still re-fetches the status from the gateway, so the
order must exist on the sandbox side.
"""

import argparse
import json
import os

import httpx

from paybridge.common.gateway import notification_signature


def build_payload(order_id: str, transaction_status: str, status_code: str, gross_amount: str, server_key: str) -> dict:
    """Assemble a minimal notification body with a valid `signature_key`."""

    return {
        "order_id": order_id,
        "transaction_status": transaction_status,
        "status_code": status_code,
        "gross_amount": gross_amount,
        "signature_key": notification_signature(order_id, status_code, gross_amount, server_key),
    }


def main() -> None:
    """CLI entrypoint."""

    parser = argparse.ArgumentParser(description="Send a signed payment notification to the webhook.")
    parser.add_argument("--url", default="http://localhost:8002/notifications/midtrans")
    parser.add_argument("--order-id", required=True)
    parser.add_argument("--transaction-status", default="settlement")
    parser.add_argument("--status-code", default="200")
    parser.add_argument("--gross-amount", required=True, help='As the gateway formats it, e.g. "10000.00"')
    parser.add_argument("--repeat", type=int, default=1, help="Deliver the same payload N times")
    args = parser.parse_args()

    server_key = os.getenv("MIDTRANS_SERVER_KEY")
    if not server_key:
        raise SystemExit("MIDTRANS_SERVER_KEY must be set")

    payload = build_payload(
        args.order_id, args.transaction_status, args.status_code, args.gross_amount, server_key
    )
    body = json.dumps(payload).encode("utf-8")
    for attempt in range(1, args.repeat + 1):
        resp = httpx.post(args.url, content=body, headers={"content-type": "application/json"}, timeout=10.0)
        print(f"delivery={attempt} status={resp.status_code} body={resp.text}")


if __name__ == "__main__":
    main()
