"""
Checkout Rush Simulation Script

Simulates many tables ordering at once to exercise checkout, the
duplicate-submission guard and the ledger worker.
Run from project root: python scripts/simulate.py

Author: Storefront Team
Version: 1.0.0
"""

import argparse
import asyncio
import random
import sys
import time
from datetime import datetime
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 50

CUSTOMER_NAMES = ["Dina", "Budi", "Sari", "Andi", "Rina", "Tono", "Maya", "Eko", "Lina", "Agus"]


async def fetch_menu(client: httpx.AsyncClient) -> list[dict[str, Any]]:
    """Every orderable product, across all menu pages."""
    items: list[dict[str, Any]] = []
    categories = (await client.get(f"{API_BASE_URL}/api/categories")).json()
    for category in categories:
        page, total_pages = 1, 1
        while page <= total_pages:
            data = (await client.get(
                f"{API_BASE_URL}/api/products",
                params={"category_id": category["id"], "page": page},
            )).json()
            items.extend(data["items"])
            total_pages = data["total_pages"]
            page += 1
    return items


async def place_order(
    client: httpx.AsyncClient,
    menu: list[dict[str, Any]],
    order_num: int,
    double_submit: bool = False,
) -> dict[str, Any]:
    """Open a table session, fill the cart and check out."""
    table = str(random.randint(1, 30))
    start_time = time.time()

    try:
        session = (await client.post(
            f"{API_BASE_URL}/api/sessions", params={"table": table}
        )).json()
        base = f"{API_BASE_URL}/api/sessions/{session['session_id']}"

        for item in random.sample(menu, k=min(len(menu), random.randint(1, 4))):
            await client.post(
                f"{base}/cart/items",
                json={"item_id": item["id"], "quantity": random.randint(1, 3)},
            )

        payload = {
            "customer_name": random.choice(CUSTOMER_NAMES),
            "payment_method": random.choice(["cashier", "wa_checkout"]),
        }
        submits = [client.post(f"{base}/checkout", json=payload, timeout=30.0)]
        if double_submit:
            submits.append(client.post(f"{base}/checkout", json=payload, timeout=30.0))
        responses = await asyncio.gather(*submits)
        elapsed = round(time.time() - start_time, 3)

        placed = [r.json() for r in responses if r.status_code == 201]
        rejected = [r.json().get("error_code") for r in responses if r.status_code != 201]

        if placed:
            order = placed[0]["order"]
            return {
                "order_num": order_num,
                "success": True,
                "order_number": order["order_number"],
                "total": float(order["total"]),
                "duplicates_placed": len(placed) - 1,
                "rejected": rejected,
                "time": elapsed,
            }
        return {
            "order_num": order_num,
            "success": False,
            "error": ", ".join(str(code) for code in rejected),
            "time": elapsed,
        }
    except httpx.HTTPError as e:
        elapsed = round(time.time() - start_time, 3)
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": elapsed,
        }


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(
    num_orders: int = TOTAL_ORDERS,
    double_submit: bool = False,
) -> dict[str, Any]:
    """
    Run the checkout rush.

    Args:
        num_orders: Number of table sessions to simulate
        double_submit: Fire every checkout twice at once
    """
    print("=" * 70)
    print("🔥 CHECKOUT RUSH - CONCURRENCY TEST")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"🔁 Double submit: {double_submit}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        menu = await fetch_menu(client)
        if not menu:
            print("\n❌ Menu is empty. Is the API running?")
            return {"total": num_orders, "successful": 0, "failed": num_orders}

        tasks = [place_order(client, menu, i + 1, double_submit) for i in range(num_orders)]
        results = await asyncio.gather(*tasks)

    total_time = round(time.time() - start_time, 2)

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]
    duplicates = sum(r.get("duplicates_placed", 0) for r in successful)
    numbers = [r["order_number"] for r in successful]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)

    print(f"\n✅ Successful Orders: {len(successful)}/{num_orders}")
    print(f"❌ Failed Orders: {len(failed)}/{num_orders}")
    print(f"⏱️  Total Time: {total_time}s")
    print(f"🔁 Duplicate orders placed: {duplicates}")
    print(f"🔢 Distinct order numbers: {len(set(numbers))}/{len(numbers)}")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        total_revenue = sum(r["total"] for r in successful)

        print("\n📈 Performance Metrics:")
        print(f"   Average Checkout: {avg_time}s")
        print(f"   Fastest: {min(r['time'] for r in successful)}s")
        print(f"   Slowest: {max(r['time'] for r in successful)}s")
        print(f"   💰 Total Revenue: Rp {total_revenue:,.0f}".replace(",", "."))

    if failed:
        print("\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("\n" + "=" * 70)
    print("🔍 VERIFICATION STEPS")
    print("=" * 70)
    print("1. Check Celery terminal - all ledger tasks should complete")
    print("2. Run: python scripts/verify.py")
    print(f"3. Visit {API_BASE_URL}/api/dashboard-data to see totals")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "results": results,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Checkout Rush Simulation")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--double-submit", action="store_true", help="Submit every checkout twice")
    parser.add_argument("--url", default=API_BASE_URL, help="API base URL")
    args = parser.parse_args()

    API_BASE_URL = args.url
    asyncio.run(run_simulation(args.orders, args.double_submit))
