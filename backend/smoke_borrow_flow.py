#!/usr/bin/env python3
"""
End-to-end borrow flow against a running server
Steps: 1. Login 2. Create item 3. Borrow 4. Return 5. Verify availability 6. Report
"""
import os
import sys

import requests

BASE_URL = os.getenv("BORROWTRACK_URL", "http://localhost:8000")
EMAIL = os.getenv("BORROWTRACK_ADMIN_EMAIL", "admin@example.com")
PASSWORD = os.getenv("BORROWTRACK_ADMIN_PASSWORD", "ChangeMe123!")
HEADERS = {"Content-Type": "application/json"}


def step(title):
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60)


def check(resp, expected=200):
    if resp.status_code != expected:
        print(f"✗ {resp.request.method} {resp.url} -> {resp.status_code}: {resp.text}")
        sys.exit(1)
    print(f"✓ {resp.request.method} {resp.url} -> {resp.status_code}")
    return resp.json() if "json" in resp.headers.get("content-type", "") else resp.text


step("STEP 1: LOGIN")
session = requests.Session()
check(session.post(f"{BASE_URL}/auth/login", json={"email": EMAIL, "password": PASSWORD}, headers=HEADERS))

step("STEP 2: CREATE TOOL")
item = check(session.post(f"{BASE_URL}/inventory", json={
    "name": "Smoke Test Multimeter",
    "type": "tool",
    "quantity": 3,
    "brand": "Fluke",
    "location": "Shelf A1",
}, headers=HEADERS), expected=201)
print(f"  Item: {item['id']} | barcode {item['barcode']} | available {item['available']}")

step("STEP 3: BORROW 2")
record = check(session.post(f"{BASE_URL}/borrowing", json={"item_id": item["id"], "quantity": 2},
                            headers=HEADERS), expected=201)
print(f"  Record: {record['id']} | status {record['status']}")
after_borrow = check(session.get(f"{BASE_URL}/inventory/{item['id']}"))
assert after_borrow["available"] == 1, after_borrow

step("STEP 4: RETURN")
returned = check(session.post(f"{BASE_URL}/borrowing/{record['id']}/return"))
assert returned["status"] == "returned", returned

step("STEP 5: VERIFY AVAILABILITY")
after_return = check(session.get(f"{BASE_URL}/inventory/{item['id']}"))
assert after_return["available"] == 3, after_return

step("STEP 6: REPORT + CLEANUP")
report = check(session.get(f"{BASE_URL}/reports/borrowing", params={"period": "weekly"}))
print(f"  Stats: {report['stats']}")
check(session.delete(f"{BASE_URL}/inventory/{item['id']}"))

print("\n✅ Borrow flow OK")
