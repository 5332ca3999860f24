"""Shared fixtures for metrics tests."""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest

from gestum.core.records import (
    Expense,
    ExpenseStatus,
    Product,
    Sale,
    SaleItem,
    SaleStatus,
    SupportConversation,
    Tag,
    Team,
)


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clean_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Isolate tests from GESTUM_* variables, a stray .env and cached settings."""
    for var in [k for k in os.environ if k.startswith("GESTUM_")]:
        monkeypatch.delenv(var)

    monkeypatch.chdir(tmp_path)

    import gestum.config.settings as settings_module

    monkeypatch.setattr(settings_module, "_settings", None)
    yield


@pytest.fixture
def sales() -> list[Sale]:
    return [
        Sale(
            "s1",
            utc(2024, 3, 10, 8, 0),
            Decimal("50"),
            SaleStatus.COMPLETED,
            items=(SaleItem("p1", "Coffee", 2, Decimal("10")), SaleItem("p2", "Bread", 1, Decimal("30"))),
        ),
        Sale(
            "s2",
            utc(2024, 3, 10, 23, 59, 59, 999000),
            Decimal("30"),
            SaleStatus.COMPLETED,
            items=(SaleItem("p2", "Bread", 1, Decimal("30")),),
        ),
        Sale("s3", utc(2024, 3, 11, 0, 0, 0, 1000), Decimal("999"), SaleStatus.COMPLETED),
        Sale("s4", utc(2024, 3, 10, 12, 0), Decimal("400"), SaleStatus.PENDING),
        Sale("s5", utc(2024, 3, 10, 13, 0), Decimal("75"), SaleStatus.CANCELLED),
    ]


@pytest.fixture
def expenses() -> list[Expense]:
    return [
        Expense("e1", utc(2024, 3, 10, 9, 0), Decimal("10.50"), ExpenseStatus.PAID, name="Rent"),
        Expense(
            "e2",
            utc(2024, 3, 10, 10, 0),
            Decimal("200"),
            ExpenseStatus.PENDING,
            name="Supplier",
            due_date=utc(2024, 3, 5),
        ),
        Expense("e3", utc(2024, 2, 28, 10, 0), Decimal("40"), ExpenseStatus.PAID, name="Power"),
    ]


@pytest.fixture
def products() -> list[Product]:
    return [Product("1", "A", 5), Product("2", "B", 15), Product("3", "C", 10)]


@pytest.fixture
def conversations() -> list[SupportConversation]:
    opened = utc(2024, 3, 10, 9, 0)
    return [
        SupportConversation(
            "c1",
            opened,
            first_response_at=utc(2024, 3, 10, 9, 10),
            resolved_at=utc(2024, 3, 10, 10, 0),
            team_id="x",
            tags=("t1", "t2"),
            assigned_to="ana",
        ),
        SupportConversation(
            "c2",
            opened,
            first_response_at=utc(2024, 3, 10, 9, 5),
            transferred=True,
            team_id="y",
            tags=("t1",),
        ),
        SupportConversation("c3", opened, team_id="x", tags=("ghost",), assigned_to="ana"),
    ]


@pytest.fixture
def directory_records() -> dict[str, list[Any]]:
    return {
        "tags": [Tag("t1", "Billing", "#ff0000"), Tag("t2", "Bug", "#00ff00")],
        "teams": [Team("x", "Sales"), Team("y", "Support")],
    }


@pytest.fixture
def snapshot_data() -> dict[str, Any]:
    """Raw snapshot in the shape the web client exports."""
    return {
        "sales": [
            {"id": 1, "date": "2024-03-10T08:00:00Z", "total": 50, "status": "completed",
             "items": [{"productId": "1", "productName": "A", "quantity": 3, "price": "10"}]},
            {"id": 2, "date": "2024-03-10T23:59:59.999Z", "total": "30.00", "status": "completed"},
            {"id": 3, "date": "2024-03-11T00:00:00.001Z", "total": 999, "status": "completed"},
            {"id": 4, "date": "2024-03-10T12:00:00Z", "total": 5, "status": "refunded"},
        ],
        "expenses": [
            {"id": "e1", "createdAt": "2024-03-10T09:00:00Z", "amount": 10, "status": "paid", "name": "Rent"},
            {"id": "e2", "createdAt": "2024-03-01T09:00:00Z", "amount": 25.5, "status": "pending",
             "name": "Supplier", "dueDate": "2024-03-05"},
        ],
        "products": [
            {"id": 1, "name": "A", "quantity": 5},
            {"id": 2, "name": "B", "quantity": 15},
            {"id": 3, "name": "C", "quantity": 10},
        ],
        "support_conversations": [
            {"id": "c1", "openedAt": "2024-03-10T09:00:00Z", "firstResponseAt": "2024-03-10T09:10:00Z",
             "teamId": "x", "tags": ["t1"]},
            {"id": "c2", "openedAt": "2024-03-10T09:00:00Z", "teamId": "y", "transferred": True},
            {"id": "c3", "openedAt": "2024-03-10T09:00:00Z", "resolvedAt": "2024-03-10T09:30:00Z",
             "teamId": "x"},
        ],
        "tags": [{"id": "t1", "name": "Billing", "color": "#ff0000"}],
        "teams": [{"id": "x", "name": "Sales"}, {"id": "y", "name": "Support"}],
    }


@pytest.fixture
def snapshot_file(tmp_path: Path, snapshot_data: dict[str, Any]) -> Path:
    path = tmp_path / "snapshot.json"
    path.write_text(json.dumps(snapshot_data), encoding="utf-8")
    return path
