"""
Shared test fixtures.

The Supabase double keeps rows in memory per table, applies eq/in_/or_
filters, ordering and ranges, and implements the two lifecycle database
functions (apply_shipment_change, create_shipment_with_history) with the
same error codes the SQL versions raise.
"""

import os
import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Settings are read at import time
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")
os.environ.setdefault("JWT_SECRET", "test-secret-for-unit-tests-only")
os.environ["SHIPSGO_API_KEY"] = ""
os.environ["PAYMENT_STATUS_MODE"] = "strict"
os.environ["ENVIRONMENT"] = "development"
os.environ["FRONTEND_URL"] = "http://localhost:3000"

import copy
import itertools
import re
import pytest
from unittest.mock import patch
from datetime import datetime, timedelta
from typing import Any, Generator, Optional
from uuid import uuid4


# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseError(Exception):
    """Stands in for postgrest's APIError: carries the Postgres error code."""

    def __init__(self, code: str, message: str = ""):
        self.code = code
        self.message = message
        super().__init__(message or code)


class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: Any = None, count: Optional[int] = None):
        self.data = data if data is not None else []
        self.count = count


_clock = itertools.count()
_BASE_TIME = datetime(2025, 1, 1, 12, 0, 0)


def _timestamp() -> str:
    """Strictly increasing timestamps so created_at ordering is stable."""
    return (_BASE_TIME + timedelta(milliseconds=next(_clock))).isoformat() + "Z"


def _sort_key(value: Any):
    return (value is None, value if value is not None else "")


class MockSupabaseQuery:
    """Chainable query builder over one in-memory table."""

    def __init__(self, client: "MockSupabaseClient", table: str):
        self._client = client
        self._table = table
        self._action = "select"
        self._payload: Any = None
        self._count_requested = False
        self._filters: list = []
        self._order: list[tuple[str, bool]] = []
        self._range: Optional[tuple[int, int]] = None
        self._limit: Optional[int] = None
        self._is_single = False

    # Actions

    def select(self, *args, count: Optional[str] = None, **kwargs):
        self._action = "select"
        self._count_requested = count is not None
        return self

    def insert(self, data):
        self._action = "insert"
        self._payload = data
        return self

    def update(self, data):
        self._action = "update"
        self._payload = data
        return self

    def delete(self):
        self._action = "delete"
        return self

    # Filters

    def eq(self, column, value):
        self._filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self._filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        values = list(values)
        self._filters.append(lambda row: row.get(column) in values)
        return self

    def or_(self, expression: str):
        clauses = []
        for part in expression.split(","):
            column, op, pattern = part.split(".", 2)
            if op != "ilike":
                raise NotImplementedError(op)
            regex = re.compile(
                "^" + re.escape(pattern).replace("%", ".*") + "$",
                re.IGNORECASE
            )
            clauses.append((column, regex))
        self._filters.append(
            lambda row: any(
                row.get(column) is not None and regex.match(str(row.get(column)))
                for column, regex in clauses
            )
        )
        return self

    # Shaping

    def order(self, column, desc: bool = False, **kwargs):
        self._order.append((column, desc))
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def single(self):
        self._is_single = True
        return self

    def _matching(self) -> list[dict]:
        rows = self._client.rows(self._table)
        return [row for row in rows if all(f(row) for f in self._filters)]

    def execute(self) -> MockSupabaseResponse:
        if self._action == "insert":
            items = self._payload if isinstance(self._payload, list) else [self._payload]
            inserted = [self._client.insert_row(self._table, item) for item in items]
            return MockSupabaseResponse(data=copy.deepcopy(inserted))

        if self._action == "update":
            matched = self._matching()
            for row in matched:
                row.update(self._payload)
                row["updated_at"] = _timestamp()
            return MockSupabaseResponse(data=copy.deepcopy(matched))

        if self._action == "delete":
            matched = self._matching()
            self._client.delete_rows(self._table, matched)
            return MockSupabaseResponse(data=copy.deepcopy(matched))

        rows = self._matching()
        for column, desc in reversed(self._order):
            rows = sorted(rows, key=lambda row: _sort_key(row.get(column)), reverse=desc)

        total = len(rows)
        if self._range is not None:
            start, end = self._range
            rows = rows[start:end + 1]
        if self._limit is not None:
            rows = rows[:self._limit]

        rows = copy.deepcopy(rows)
        count = total if self._count_requested else None

        if self._is_single:
            return MockSupabaseResponse(data=rows[0] if rows else None, count=count)
        return MockSupabaseResponse(data=rows, count=count)


class MockRpcCall:
    def __init__(self, client: "MockSupabaseClient", name: str, params: dict):
        self._client = client
        self._name = name
        self._params = params

    def execute(self) -> MockSupabaseResponse:
        self._client.rpc_calls.append((self._name, copy.deepcopy(self._params)))
        handler = getattr(self._client, f"_rpc_{self._name}")
        return MockSupabaseResponse(data=handler(**self._params))


class MockSupabaseClient:
    """In-memory Supabase client."""

    # Columns a function call may never overwrite
    PROTECTED_COLUMNS = {"id", "version", "tracking_number", "tracking_token", "created_at"}

    def __init__(self):
        self._tables: dict[str, list[dict]] = {}
        self.rpc_calls: list[tuple[str, dict]] = []

    def set_table_data(self, table_name: str, data: list, count: Optional[int] = None):
        """Replace the rows of a table."""
        self._tables[table_name] = [dict(row) for row in data]

    def rows(self, table_name: str) -> list[dict]:
        return self._tables.setdefault(table_name, [])

    def insert_row(self, table_name: str, item: dict) -> dict:
        row = dict(item)
        row.setdefault("id", str(uuid4()))
        row.setdefault("created_at", _timestamp())
        row.setdefault("updated_at", None)
        self.rows(table_name).append(row)
        return row

    def delete_rows(self, table_name: str, matched: list[dict]) -> None:
        ids = {row["id"] for row in matched}
        self._tables[table_name] = [r for r in self.rows(table_name) if r["id"] not in ids]
        if table_name == "shipments":
            # on delete cascade
            for child in ("payment_records", "shipment_updates"):
                self._tables[child] = [r for r in self.rows(child) if r.get("shipment_id") not in ids]

    def table(self, name: str) -> MockSupabaseQuery:
        return MockSupabaseQuery(self, name)

    def rpc(self, name: str, params: dict) -> MockRpcCall:
        return MockRpcCall(self, name, params)

    def find(self, table_name: str, row_id: str) -> Optional[dict]:
        for row in self.rows(table_name):
            if row["id"] == row_id:
                return row
        return None

    # Database functions

    def _rpc_apply_shipment_change(
        self,
        p_shipment_id: str,
        p_expected_version: Optional[int],
        p_changes: dict,
        p_history: Optional[dict] = None,
        p_payment: Optional[dict] = None,
    ) -> dict:
        shipment = self.find("shipments", p_shipment_id)
        if shipment is None:
            raise MockSupabaseError("P0002", f"shipment {p_shipment_id} not found")
        if p_expected_version is not None and shipment["version"] != p_expected_version:
            raise MockSupabaseError("40001", "version mismatch")

        new_version = shipment["version"] + 1
        for key, value in (p_changes or {}).items():
            if key not in self.PROTECTED_COLUMNS:
                shipment[key] = value
        shipment["version"] = new_version
        shipment["updated_at"] = _timestamp()

        payment = None
        if p_payment is not None:
            payment = self.insert_row("payment_records", {**p_payment, "shipment_id": p_shipment_id})

        if p_history is not None:
            self.insert_row("shipment_updates", {
                **p_history,
                "shipment_id": p_shipment_id,
                "sequence": new_version,
            })

        return {"shipment": copy.deepcopy(shipment), "payment": copy.deepcopy(payment)}

    def _rpc_create_shipment_with_history(self, p_shipment: dict, p_history: dict) -> dict:
        for row in self.rows("shipments"):
            if row["tracking_number"] == p_shipment["tracking_number"]:
                raise MockSupabaseError("23505", "duplicate tracking_number")

        shipment = self.insert_row("shipments", {**p_shipment, "version": 1})
        self.insert_row("shipment_updates", {
            **p_history,
            "shipment_id": shipment["id"],
            "sequence": 1,
        })
        return {"shipment": copy.deepcopy(shipment)}


# ===================
# FIXTURES
# ===================

SERVICE_MODULES = (
    "services.shipment_service",
    "services.payment_service",
    "services.shipment_update_service",
)


def reset_service_singletons():
    """Drop cached service instances so the next call builds them against the current client."""
    import services.shipment_service as shipment_service
    import services.payment_service as payment_service
    import services.shipment_update_service as shipment_update_service
    import services.tracking_service as tracking_service
    import services.customer_portal_service as customer_portal_service

    shipment_service._shipment_service = None
    payment_service._payment_service = None
    shipment_update_service._shipment_update_service = None
    tracking_service._tracking_service = None
    customer_portal_service._customer_portal_service = None


@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create an in-memory Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("shipments", [ShipmentFactory.create()])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with the in-memory one.

    Any service built inside the test talks to mock_supabase.
    """
    reset_service_singletons()
    patches = [patch("config.database.get_supabase_client", return_value=mock_supabase)]
    patches += [patch(f"{module}.get_supabase_client", return_value=mock_supabase) for module in SERVICE_MODULES]
    for p in patches:
        p.start()
    try:
        yield mock_supabase
    finally:
        for p in reversed(patches):
            p.stop()
        reset_service_singletons()


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    from utils.rate_limit import tracking_rate_limiter
    tracking_rate_limiter.reset()
    yield
    tracking_rate_limiter.reset()


@pytest.fixture
def admin_actor():
    from models.auth import Actor, Role
    return Actor(id="admin-1", username="admin", role=Role.ADMIN)


@pytest.fixture
def customer_actor():
    from models.auth import Actor, Role
    return Actor(id="customer-1", username="acme", role=Role.CUSTOMER, client_id="client-1")


@pytest.fixture
def admin_headers() -> dict:
    from utils.auth import create_access_token
    token = create_access_token("admin-1", "admin", "admin")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def customer_headers() -> dict:
    from utils.auth import create_access_token
    token = create_access_token("customer-1", "acme", "customer", client_id="client-1")
    return {"Authorization": f"Bearer {token}"}


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client(mock_db):
    """
    FastAPI test client backed by the in-memory database.

    Usage:
        def test_endpoint(test_client, mock_supabase, admin_headers):
            mock_supabase.set_table_data("shipments", [...])
            response = test_client.get("/api/shipments", headers=admin_headers)
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)
