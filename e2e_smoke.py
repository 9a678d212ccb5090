#!/usr/bin/env python3
"""
Shop Service - E2E Smoke Tests (against a running server)

Run:
  shop-service &            # or: python -m shop_service.app.main
  python e2e_smoke.py

Optional env:
  SHOP_BASE=http://localhost:3000
  TIMEOUT_SECONDS=30
  DEBUG=1

The scenarios expect a freshly started server (seeded catalog, no users).
"""

from __future__ import annotations

import os
import sys
import time
import uuid
from dataclasses import dataclass
from typing import List, Optional

import requests


# =========================
# Simple CLI UI (ANSI)
# =========================

class Style:
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"
    GRAY = "\033[90m"


def section_title(text: str):
    line = "─" * (len(text) + 2)
    print(f"\n{Style.BLUE}┌{line}┐{Style.RESET}")
    print(f"{Style.BLUE}│ {Style.BOLD}{text}{Style.RESET}{Style.BLUE} │{Style.RESET}")
    print(f"{Style.BLUE}└{line}┘{Style.RESET}")


def info(msg: str):
    print(f"{Style.CYAN}ℹ {msg}{Style.RESET}")


def ok(msg: str):
    print(f"{Style.GREEN}✔ {msg}{Style.RESET}")


def fail(msg: str):
    print(f"{Style.RED}✘ {msg}{Style.RESET}")


# =========================
# Config
# =========================

SHOP_BASE = os.getenv("SHOP_BASE", "http://localhost:3000")
TIMEOUT_SECONDS = int(os.getenv("TIMEOUT_SECONDS", "30"))
DEBUG = os.getenv("DEBUG", "0").strip() in {"1", "true", "True", "YES", "yes"}

PASSWORD = "secret123"


def debug(msg: str):
    if DEBUG:
        print(f"{Style.GRAY}… {msg}{Style.RESET}")


@dataclass
class TestResult:
    name: str
    success: bool
    details: str = ""


# =========================
# HTTP helpers
# =========================

def http(method: str, path: str, token: Optional[str] = None, **kwargs) -> requests.Response:
    kwargs.setdefault("timeout", 8)
    if token:
        kwargs.setdefault("headers", {})["Authorization"] = f"Bearer {token}"
    debug(f"{method} {path} json={kwargs.get('json')}")
    return requests.request(method, SHOP_BASE + path, **kwargs)


def wait_for_health(timeout: int = TIMEOUT_SECONDS) -> bool:
    start = time.time()
    while time.time() - start < timeout:
        try:
            if http("GET", "/api/health").status_code == 200:
                ok("shop service is healthy.")
                return True
        except requests.RequestException as e:
            debug(f"not ready: {e}")
        time.sleep(1)
    fail(f"shop service did not become healthy in {timeout} seconds.")
    return False


def product_stock(product_id: int) -> int:
    return http("GET", f"/api/products/{product_id}").json()["product"]["stock"]


def register_and_login(name: str) -> str:
    email = f"{name.lower()}-{uuid.uuid4().hex[:8]}@example.com"
    resp = http("POST", "/api/auth/register", json={"name": name, "email": email, "password": PASSWORD})
    if resp.status_code != 201:
        raise AssertionError(f"register {email}: HTTP {resp.status_code} {resp.text}")
    resp = http("POST", "/api/auth/login", json={"email": email, "password": PASSWORD})
    if resp.status_code != 200:
        raise AssertionError(f"login {email}: HTTP {resp.status_code} {resp.text}")
    return resp.json()["token"]


def check(name: str, condition: bool, details: str) -> TestResult:
    (ok if condition else fail)(f"{name}: {details}")
    return TestResult(name, condition, details)


# =========================
# Scenarios
# =========================

def scenario_happy_path(token: str) -> List[TestResult]:
    section_title("Scenario 1 - Place Order")
    results: List[TestResult] = []

    products = http("GET", "/api/products").json()["products"]
    results.append(check("Seeded catalog", len(products) == 6, f"{len(products)} products"))

    before = product_stock(1)
    resp = http("POST", "/api/orders", token, json={"items": [{"productId": 1, "quantity": 2}], "totalAmount": 1399.98})
    results.append(check("Order accepted", resp.status_code == 201, f"HTTP {resp.status_code}"))

    after = product_stock(1)
    results.append(check("Stock decremented", after == before - 2, f"{before} -> {after}"))
    return results


def scenario_total_mismatch(token: str) -> List[TestResult]:
    section_title("Scenario 2 - Total Mismatch")
    before = product_stock(1)
    resp = http("POST", "/api/orders", token, json={"items": [{"productId": 1, "quantity": 2}], "totalAmount": 1000.00})
    return [
        check("Mismatch rejected", resp.status_code == 400, f"HTTP {resp.status_code} {resp.text}"),
        check("Stock unchanged", product_stock(1) == before, f"stock {product_stock(1)}"),
    ]


def scenario_insufficient_stock(token: str) -> List[TestResult]:
    section_title("Scenario 3 - Insufficient Stock")
    before = product_stock(3)
    resp = http("POST", "/api/orders", token, json={"items": [{"productId": 3, "quantity": 9999}], "totalAmount": 1999700.01})
    return [
        check("Oversized order rejected", resp.status_code == 400, f"HTTP {resp.status_code} {resp.text}"),
        check("Stock unchanged", product_stock(3) == before, f"stock {product_stock(3)}"),
    ]


def scenario_foreign_order(owner: str, other: str) -> List[TestResult]:
    section_title("Scenario 4 - Another User's Order")
    resp = http("POST", "/api/orders", owner, json={"items": [{"productId": 4, "quantity": 1}], "totalAmount": 299.99})
    if resp.status_code != 201:
        return [check("Owner order placed", False, f"HTTP {resp.status_code} {resp.text}")]
    order_id = resp.json()["order"]["id"]

    own = http("GET", f"/api/orders/{order_id}", owner)
    foreign = http("GET", f"/api/orders/{order_id}", other)
    return [
        check("Owner can read order", own.status_code == 200, f"HTTP {own.status_code}"),
        check("Other user gets 404", foreign.status_code == 404, f"HTTP {foreign.status_code}"),
    ]


# =========================
# Summary
# =========================

def print_results(results: List[TestResult]) -> int:
    print(f"\n{Style.BOLD}================ TEST RESULTS ================{Style.RESET}")
    passed = 0
    for r in results:
        color = Style.GREEN if r.success else Style.RED
        print(f"{color}{'✅' if r.success else '❌'} {r.name}{Style.RESET}")
        if r.details:
            print(f"    {Style.DIM}{r.details}{Style.RESET}")
        passed += r.success

    failed = len(results) - passed
    print(f"Total tests: {len(results)}  |  Passed: {Style.GREEN}{passed}{Style.RESET}  |  Failed: {Style.RED}{failed}{Style.RESET}")
    return failed


def main():
    info(f"Waiting for {SHOP_BASE} to become healthy...")
    if not wait_for_health():
        sys.exit(1)

    alice = register_and_login("Alice")
    bob = register_and_login("Bob")

    results: List[TestResult] = []
    results.extend(scenario_happy_path(alice))
    results.extend(scenario_total_mismatch(alice))
    results.extend(scenario_insufficient_stock(alice))
    results.extend(scenario_foreign_order(alice, bob))

    sys.exit(1 if print_results(results) else 0)


if __name__ == "__main__":
    main()
