"""
Rush Hour Simulation Script

Fires a burst of concurrent checkouts at a running server, then walks
each order through the kitchen workflow as an admin while listening on
the admin event stream, and reports how many live updates arrived.

Run from project root: python scripts/simulate.py --admin-email ... --admin-password ...

Version: 1.0.0
"""

import argparse
import asyncio
import random
import sys
import time
from datetime import datetime
from typing import Any, Optional

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

API_BASE_URL = "http://localhost:3000"
TOTAL_ORDERS = 30

WORKFLOW = ["Preparing", "Out for Delivery", "Completed"]

FIRST_NAMES = ["Asha", "Ravi", "Meera", "Kiran", "Vikram", "Kavya", "Arjun", "Divya", "Sanjay", "Lakshmi"]
LAST_NAMES = ["Rao", "Kumar", "Iyer", "Shetty", "Reddy", "Nair", "Menon", "Gowda", "Bhat", "Hegde"]
STREETS = ["MG Road", "Brigade Road", "Residency Road", "Church Street", "100 Feet Road", "CMH Road"]


def generate_checkout(menu: list[dict]) -> dict[str, Any]:
    """Random cart drawn from the live menu."""
    picks = random.sample(menu, k=min(len(menu), random.randint(1, 4)))
    return {
        "items": [{"id": item["id"], "qty": random.randint(1, 3)} for item in picks],
        "name": f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}",
        "phone": f"98{random.randint(10000000, 99999999)}",
        "address": f"{random.randint(1, 300)} {random.choice(STREETS)}, Bengaluru",
        "payment": random.choice(["cash", "card", "upi"]),
    }


# =============================================================================
# ORDERS
# =============================================================================

async def send_order(client: httpx.AsyncClient, order_num: int, menu: list[dict]) -> dict[str, Any]:
    start_time = time.time()
    try:
        response = await client.post(f"{API_BASE_URL}/api/orders", json=generate_checkout(menu), timeout=30.0)
        elapsed = round(time.time() - start_time, 3)
        if response.status_code == 201:
            data = response.json()
            return {
                "order_num": order_num,
                "success": True,
                "order_id": data["order_id"],
                "total": data["total"],
                "time": elapsed,
            }
        return {"order_num": order_num, "success": False, "error": response.text[:100], "time": elapsed}
    except httpx.HTTPError as e:
        elapsed = round(time.time() - start_time, 3)
        return {"order_num": order_num, "success": False, "error": str(e)[:100], "time": elapsed}


async def advance_order(admin: httpx.AsyncClient, order_id: int) -> int:
    """Push one order through the workflow; returns the number of accepted updates."""
    accepted = 0
    for status in WORKFLOW:
        response = await admin.patch(
            f"{API_BASE_URL}/api/admin/orders/{order_id}/status",
            json={"status": status},
            timeout=30.0,
        )
        if response.status_code == 200:
            accepted += 1
        await asyncio.sleep(random.uniform(0.01, 0.1))
    return accepted


# =============================================================================
# LIVE FEED
# =============================================================================

async def listen_admin_feed(admin: httpx.AsyncClient, counts: dict[str, int], ready: asyncio.Event) -> None:
    """Count admin stream events by name until cancelled."""
    async with admin.stream("GET", f"{API_BASE_URL}/events/admin/orders", timeout=None) as response:
        if response.status_code != 200:
            print(f"   ❌ Admin stream refused: {response.status_code}")
            ready.set()
            return
        event: Optional[str] = None
        async for line in response.aiter_lines():
            if line.startswith("event: "):
                event = line[len("event: "):]
            elif line.startswith("data: ") and event:
                counts[event] = counts.get(event, 0) + 1
                if event == "connected":
                    ready.set()
                event = None
            elif line.startswith(":keep-alive"):
                counts["keep-alive"] = counts.get("keep-alive", 0) + 1


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_orders: int, admin_email: str, admin_password: str) -> dict[str, Any]:
    print("=" * 70)
    print("🔥 RUSH HOUR SIMULATION")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    async with httpx.AsyncClient() as guest, httpx.AsyncClient() as admin:
        menu = (await guest.get(f"{API_BASE_URL}/api/menu")).json()
        if not menu:
            print("\n❌ The menu is empty; add dishes before simulating.")
            return {"total": num_orders, "successful": 0, "failed": num_orders}

        login = await admin.post(
            f"{API_BASE_URL}/api/auth/login",
            json={"email": admin_email, "password": admin_password},
        )
        if login.status_code != 200:
            print(f"\n❌ Admin login failed: {login.text[:100]}")
            return {"total": num_orders, "successful": 0, "failed": num_orders}

        counts: dict[str, int] = {}
        ready = asyncio.Event()
        listener = asyncio.create_task(listen_admin_feed(admin, counts, ready))
        await asyncio.wait_for(ready.wait(), timeout=10)

        start_time = time.time()
        print("\n🚀 Firing orders...\n")
        results = await asyncio.gather(*[send_order(guest, i + 1, menu) for i in range(num_orders)])
        successful = [r for r in results if r["success"]]

        print("👨‍🍳 Advancing orders through the kitchen...\n")
        updates = await asyncio.gather(*[advance_order(admin, r["order_id"]) for r in successful])

        # Give the stream a moment to drain
        await asyncio.sleep(1)
        listener.cancel()
        try:
            await listener
        except asyncio.CancelledError:
            pass

    total_time = round(time.time() - start_time, 2)
    failed = [r for r in results if not r["success"]]

    print("=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Successful Orders: {len(successful)}/{num_orders}")
    print(f"❌ Failed Orders: {len(failed)}/{num_orders}")
    print(f"🔄 Status Updates Accepted: {sum(updates)}")
    print(f"⏱️  Total Time: {total_time}s")

    print(f"\n📡 Admin Feed:")
    print(f"   new-order events: {counts.get('new-order', 0)} (expected {len(successful)})")
    print(f"   status-update events: {counts.get('status-update', 0)} (expected {sum(updates)})")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        print(f"\n📈 Average checkout response: {avg_time}s")
        print(f"   💰 Total Revenue: ₹{sum(r['total'] for r in successful):.2f}")

    if failed:
        print(f"\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("\n" + "=" * 70)
    print("🔍 NEXT: python scripts/verify.py (with EXCEL_EXPORT_ENABLED=true and a Celery worker)")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "events": counts,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Rush Hour Simulation Script")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--base-url", default=API_BASE_URL, help="Server base URL")
    parser.add_argument("--admin-email", required=True)
    parser.add_argument("--admin-password", required=True)
    args = parser.parse_args()

    API_BASE_URL = args.base_url.rstrip("/")
    asyncio.run(run_simulation(args.orders, args.admin_email, args.admin_password))
