"""
Ledger Verification Script

Verifies data integrity of the Excel order ledger.
Run from project root: python scripts/verify.py

Author: Storefront Team
Version: 1.0.0
"""

import os
import sys
from datetime import datetime

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pandas as pd

from storefront.core.config import get_settings
from storefront.services.order_number import is_valid_order_number

settings = get_settings()
LEDGER_FILE = settings.ledger_path


def verify_ledger() -> bool:
    """Verify ledger integrity after a simulation."""

    print("=" * 60)
    print("🔍 LEDGER VERIFICATION REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📄 File: {LEDGER_FILE}")
    print("=" * 60)

    # Check if file exists
    if not LEDGER_FILE.exists():
        print("\n❌ Ledger file not found!")
        print("   Run the simulation first: python scripts/simulate.py")
        return False

    # Load ledger
    try:
        df = pd.read_excel(LEDGER_FILE, engine='openpyxl', dtype={'order_number': str})
        print("\n✅ File loaded successfully!")
    except Exception as e:
        print(f"\n❌ Could not read ledger: {e}")
        return False

    ok = True

    # Statistics
    print("\n📊 STATISTICS:")
    print(f"   Total Orders: {len(df)}")
    print(f"   Columns: {len(df.columns)}")

    # Check required columns
    required = ['order_number', 'customer_name', 'table_number', 'total_amount', 'order_status']
    missing = [col for col in required if col not in df.columns]

    if missing:
        print(f"\n⚠️ Missing Columns: {missing}")
        ok = False
    else:
        print("\n✅ All required columns present")

    # Check duplicates and format
    if 'order_number' in df.columns:
        duplicates = df['order_number'].duplicated().sum()
        if duplicates > 0:
            print(f"\n⚠️ {duplicates} duplicate order numbers found!")
            ok = False
        else:
            print("✅ No duplicate order numbers")

        malformed = [
            n for n in df['order_number'].dropna()
            if not is_valid_order_number(n, settings.order_number_prefix)
        ]
        if malformed:
            print(f"⚠️ {len(malformed)} malformed order numbers, e.g. {malformed[0]}")
            ok = False
        else:
            print("✅ Every order number is well formed")

    # Revenue
    if 'total_amount' in df.columns and len(df) > 0:
        total = df['total_amount'].sum()
        avg = df['total_amount'].mean()
        print("\n💰 REVENUE:")
        print(f"   Total: {settings.currency_symbol} {total:,.0f}".replace(",", settings.thousands_separator))
        print(f"   Average: {settings.currency_symbol} {avg:,.0f}".replace(",", settings.thousands_separator))

    # Sample data
    print("\n📋 RECENT ORDERS:")
    print("-" * 60)
    if len(df) > 0:
        cols = ['order_number', 'customer_name', 'table_number', 'total_amount', 'order_status']
        cols = [c for c in cols if c in df.columns]
        print(df[cols].tail(5).to_string(index=False))

    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE" if ok else "⚠️ VERIFICATION FOUND PROBLEMS")
    print("=" * 60)

    return ok


if __name__ == "__main__":
    sys.exit(0 if verify_ledger() else 1)
