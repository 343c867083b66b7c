"""
Smoke test for NQL Dashboard Copilot

Creates the demo KPI SQLite DB (eight months of sales/expenses plus
customers) if missing, then runs representative questions against a
running API and prints results.

Usage:
  python scripts/smoke_run.py            # seed + run questions
  python scripts/smoke_run.py --seed     # only seed data/demo.db

Exit code is always 0 for metrics pipelines, even if some requests fail.
"""

import json
import os
import sqlite3
import sys
import time
from pathlib import Path

import requests

API_BASE = os.getenv("API_BASE", "http://127.0.0.1:8000").rstrip("/")
DB_PATH = Path(
    os.getenv("DEFAULT_SQLITE_PATH")
    or Path(__file__).resolve().parents[1] / "data" / "demo.db"
)

MONTHS = [f"2025-{m:02d}" for m in range(1, 9)]

QUESTIONS = [
    {"question": "sales vs expenses last 20 months", "lang": "en"},
    {"question": "new customers per month", "lang": "en"},
    {"question": "ventas por mes", "lang": "es", "tableHints": ["sales"]},
]


def ensure_demo_db(path: Path):
    """Create demo SQLite DB if missing."""
    if path.exists():
        print(f"✅ Demo DB already exists at {path}")
        return

    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    try:
        conn.executescript(
            """
            CREATE TABLE sales (month TEXT, amount REAL);
            CREATE TABLE expenses (month TEXT, amount REAL);
            CREATE TABLE customers (
                id INTEGER PRIMARY KEY,
                name TEXT,
                created_at TEXT
            );
            """
        )
        conn.executemany(
            "INSERT INTO sales VALUES (?, ?)",
            [(m, 12000 + 850 * i) for i, m in enumerate(MONTHS)],
        )
        conn.executemany(
            "INSERT INTO expenses VALUES (?, ?)",
            [(m, 9000 + 400 * i) for i, m in enumerate(MONTHS)],
        )
        conn.executemany(
            "INSERT INTO customers (name, created_at) VALUES (?, ?)",
            [
                (f"customer-{i}-{j}", f"{m}-{10 + j:02d}")
                for i, m in enumerate(MONTHS)
                for j in range(i % 3 + 1)
            ],
        )
        conn.commit()
    finally:
        conn.close()
    print(f"✅ Demo DB created at {path}")


def availability() -> dict:
    return {"periods": {"sales": MONTHS, "expenses": MONTHS}}


def run_question(payload: dict):
    """Send a question to the ask endpoint."""
    url = f"{API_BASE}/api/v1/ask"
    body = {**payload, "availability": availability()}

    t0 = time.time()
    resp = requests.post(url, json=body, timeout=60)
    dt = (time.time() - t0) * 1000

    ok = resp.status_code == 200
    prefix = "✅" if ok else "❌"
    print(f"{prefix} {payload['question']} ({resp.status_code}) - {dt:.0f} ms")

    try:
        parsed = resp.json()
    except ValueError:
        print(resp.text[:400])
        return
    if ok:
        print(f"   sql: {parsed.get('sql')}")
        print(f"   rows: {len(parsed.get('rows') or [])}")
        if parsed.get("caveats"):
            print(f"   caveats: {parsed['caveats']}")
    else:
        print("   " + json.dumps(parsed, ensure_ascii=False))


def main():
    ensure_demo_db(DB_PATH)
    if "--seed" in sys.argv[1:]:
        return
    for payload in QUESTIONS:
        try:
            run_question(payload)
        except requests.RequestException as e:
            print(f"❌ {payload['question']}: {e}")


if __name__ == "__main__":
    main()
