import os
import sqlite3
from typing import Any, Dict, List, Optional

import pytest
from dotenv import load_dotenv

# Load .env once for tests
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
ENV_PATH = os.path.join(ROOT, ".env")
load_dotenv(ENV_PATH)

# Never talk to a real completion service from the test suite
os.environ.setdefault("OPENAI_API_KEY", "DUMMY_TEST_KEY")
os.environ.setdefault("OPENAI_BASE_URL", "http://localhost:9999")

MONTHS = [f"2025-{m:02d}" for m in range(1, 9)]


class FakeLLM:
    """CompletionService double: returns canned completions and records calls."""

    PROVIDER_ID = "fake"

    def __init__(self, *completions: str, error: Optional[Exception] = None):
        self.completions = list(completions)
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def complete(self, *, system, user, temperature=0.2, json_mode=True) -> str:
        self.calls.append(
            {
                "system": system,
                "user": user,
                "temperature": temperature,
                "json_mode": json_mode,
            }
        )
        if self.error is not None:
            raise self.error
        if len(self.completions) > 1:
            return self.completions.pop(0)
        return self.completions[0]

    def get_last_usage(self) -> Dict[str, Any]:
        return {"prompt_tokens": 11, "completion_tokens": 7, "cost_usd": 0.0001}


@pytest.fixture
def fake_llm():
    return FakeLLM


@pytest.fixture
def demo_db(tmp_path) -> str:
    """Eight months of sales/expenses plus a customers table."""
    path = tmp_path / "demo.db"
    conn = sqlite3.connect(path)
    try:
        conn.executescript(
            """
            CREATE TABLE sales (month TEXT, amount REAL);
            CREATE TABLE expenses (month TEXT, amount REAL);
            CREATE TABLE customers (id INTEGER PRIMARY KEY, name TEXT, created_at TEXT);
            """
        )
        conn.executemany(
            "INSERT INTO sales VALUES (?, ?)",
            [(m, 1000.0 + i * 100) for i, m in enumerate(MONTHS)],
        )
        conn.executemany(
            "INSERT INTO expenses VALUES (?, ?)",
            [(m, 600.0 + i * 50) for i, m in enumerate(MONTHS)],
        )
        conn.executemany(
            "INSERT INTO customers (name, created_at) VALUES (?, ?)",
            [(f"c{i}", f"{m}-15") for i, m in enumerate(MONTHS)],
        )
        conn.commit()
    finally:
        conn.close()
    return str(path)
