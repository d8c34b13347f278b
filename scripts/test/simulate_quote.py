# scripts/test/simulate_quote.py
"""Send quote / booking requests to a running backend and print the answers."""

import argparse
import requests
from datetime import datetime, timedelta, timezone

BACKEND_URL = "http://localhost:8080/api/v1"


def _window(start: str, minutes: int):
    begin = datetime.fromisoformat(start) if start else datetime.now(timezone.utc).replace(second=0, microsecond=0)
    if begin.tzinfo is None:
        begin = begin.replace(tzinfo=timezone.utc)
    return begin.isoformat(), (begin + timedelta(minutes=minutes)).isoformat()


def simulate_quote(path, space_id, lot_id, vehicle_type, user_group, start, minutes, api_key=None):
    start_time, end_time = _window(start, minutes)
    body = {"vehicleType": vehicle_type, "userGroup": user_group,
            "startTime": start_time, "endTime": end_time}
    if space_id is not None:
        body["parkingSpaceId"] = space_id
    if lot_id is not None:
        body["parkingLotId"] = lot_id
    headers = {"X-API-Key": api_key} if api_key else {}
    resp = requests.post(f"{BACKEND_URL}{path}", json=body, headers=headers, timeout=10)
    data = resp.json()
    if resp.ok:
        print(f"✅ {path} {start_time} +{minutes}min → {data['amount']} {data['currency']}")
        for part in data["breakdown"].split("; "):
            print(f"   · {part}")
    else:
        print(f"❌ {path} → HTTP {resp.status_code} [{data.get('error', '-')}] {data.get('detail')}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Request price quotes from the pricing backend")
    parser.add_argument("--endpoint", default="bookings",
                        choices=["bookings", "parking-sessions", "pricing"])
    parser.add_argument("--space", type=int, default=None)
    parser.add_argument("--lot", type=int, default=None)
    parser.add_argument("--vehicle", default="CAR")
    parser.add_argument("--group", default="PUBLIC")
    parser.add_argument("--start", default=None, help="ISO-8601 start, defaults to now (UTC)")
    parser.add_argument("--minutes", type=int, default=60)
    parser.add_argument("--api-key", default=None)
    args = parser.parse_args()

    if args.endpoint != "pricing" and args.space is None:
        parser.error("--space is required for bookings and parking-sessions quotes")

    simulate_quote(f"/{args.endpoint}/quote", args.space, args.lot, args.vehicle, args.group,
                   args.start, args.minutes, args.api_key)
