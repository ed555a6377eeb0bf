"""
Excel Verification Script

Checks the order export workbook after a simulation run.
Run from project root: python scripts/verify.py

Version: 1.0.0
"""

from datetime import datetime

import pandas as pd

from oldrao.services import ExcelManager


def verify_excel() -> bool:
    """Verify Excel file integrity after simulation."""
    excel_file = ExcelManager.orders_file()

    print("=" * 60)
    print("🔍 EXCEL VERIFICATION REPORT")
    print("=" * 60)
    print(f"⏰ Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"📄 File: {excel_file}")
    print("=" * 60)

    if not excel_file.exists():
        print("\n❌ Excel file not found!")
        print("   Run the simulation first: python scripts/simulate.py")
        return False

    try:
        df = pd.read_excel(excel_file, engine='openpyxl')
        print(f"\n✅ File loaded successfully!")
    except Exception as e:
        print(f"\n❌ Could not read Excel file: {e}")
        return False

    print(f"\n📊 STATISTICS:")
    print(f"   Total Orders: {len(df)}")
    print(f"   Columns: {len(df.columns)}")

    missing = [col for col in ExcelManager.ORDER_COLUMNS if col not in df.columns]
    if missing:
        print(f"\n⚠️ Missing Columns: {missing}")
    else:
        print(f"\n✅ All columns present")

    # Re-exports replace rows, so every order appears once
    if 'order_id' in df.columns:
        duplicates = df['order_id'].duplicated().sum()
        if duplicates > 0:
            print(f"\n⚠️ {duplicates} duplicate order IDs found!")
        else:
            print(f"✅ No duplicate order IDs")

    if 'order_status' in df.columns:
        print(f"\n🍳 STATUS BREAKDOWN:")
        for status, count in df['order_status'].value_counts().items():
            print(f"   {status}: {count}")

    if 'total' in df.columns:
        billed = df[df['order_status'] != 'Cancelled'] if 'order_status' in df.columns else df
        print(f"\n💰 REVENUE:")
        print(f"   Total: ₹{billed['total'].sum():.2f}")
        print(f"   Average: ₹{billed['total'].mean():.2f}")

    print(f"\n📋 RECENT ORDERS:")
    print("-" * 60)
    if len(df) > 0:
        cols = [c for c in ['order_id', 'customer_name', 'total', 'order_status'] if c in df.columns]
        print(df[cols].tail(5).to_string(index=False))

    print("\n" + "=" * 60)
    print("✅ VERIFICATION COMPLETE")
    print("=" * 60)

    return not missing


if __name__ == "__main__":
    verify_excel()
