"""Typed records supplied by the Record Source.

Each record kind is a frozen dataclass with a fixed field set and enumerated
status values. Raw mappings (from JSON/YAML snapshots or a hosted backend)
are validated against a JSON Schema before conversion; anything malformed
raises ``InvalidRecord``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping

import jsonschema  # type: ignore[import-untyped]

from .time import format_utc_iso8601, parse_utc_iso8601

__all__ = [
    "RECORD_SCHEMAS",
    "Expense",
    "ExpenseStatus",
    "InvalidRecord",
    "Product",
    "RecordSchema",
    "UNKNOWN_TAG_COLOR",
    "Sale",
    "SaleItem",
    "SaleStatus",
    "SupportConversation",
    "Tag",
    "Team",
    "normalize_keys",
]


class InvalidRecord(ValueError):
    """Raised when a raw record misses or mangles a required field."""

    def __init__(
        self,
        kind: str,
        message: str,
        *,
        record_id: Any = None,
        errors: list[str] | None = None,
    ) -> None:
        super().__init__(f"Invalid {kind} record {record_id!r}: {message}")
        self.kind = kind
        self.record_id = record_id
        self.errors = errors or [message]


class SaleStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ExpenseStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


UNKNOWN_TAG_COLOR = "#6366f1"

_NUMERIC = {"type": ["number", "string"]}
_ID = {"type": ["string", "integer"]}

RECORD_SCHEMAS: dict[str, dict[str, Any]] = {
    "sale": {
        "type": "object",
        "required": ["id", "date", "total", "status"],
        "properties": {
            "id": _ID,
            "total": _NUMERIC,
            "status": {"enum": [s.value for s in SaleStatus]},
            "payment_method": {"type": ["string", "null"]},
            "items": {
                "type": "array",
                "items": {
                    "type": "object",
                    "required": ["product_id", "quantity"],
                    "properties": {
                        "product_id": _ID,
                        "product_name": {"type": "string"},
                        "quantity": {"type": "integer", "minimum": 0},
                        "price": _NUMERIC,
                    },
                },
            },
        },
    },
    "expense": {
        "type": "object",
        "required": ["id", "created_at", "amount", "status"],
        "properties": {
            "id": _ID,
            "amount": _NUMERIC,
            "status": {"enum": [s.value for s in ExpenseStatus]},
            "name": {"type": "string"},
            "category": {"type": "string"},
        },
    },
    "product": {
        "type": "object",
        "required": ["id", "name", "quantity"],
        "properties": {
            "id": _ID,
            "name": {"type": "string"},
            "quantity": {"type": "integer", "minimum": 0},
            "price": _NUMERIC,
            "category": {"type": "string"},
        },
    },
    "support_conversation": {
        "type": "object",
        "required": ["id", "opened_at"],
        "properties": {
            "id": _ID,
            "transferred": {"type": "boolean"},
            "tags": {"type": "array", "items": _ID},
            "team_id": {"type": ["string", "integer", "null"]},
            "assigned_to": {"type": ["string", "null"]},
        },
    },
    "tag": {
        "type": "object",
        "required": ["id", "name"],
        "properties": {"id": _ID, "name": {"type": "string"}, "color": {"type": "string"}},
    },
    "team": {
        "type": "object",
        "required": ["id", "name"],
        "properties": {"id": _ID, "name": {"type": "string"}},
    },
}

# camelCase keys used by the web client, and column names used by the hosted backend
_KEY_ALIASES = {
    "createdAt": "created_at",
    "dueDate": "due_date",
    "paymentMethod": "payment_method",
    "productId": "product_id",
    "productName": "product_name",
    "openedAt": "opened_at",
    "firstResponseAt": "first_response_at",
    "resolvedAt": "resolved_at",
    "closed_at": "resolved_at",
    "teamId": "team_id",
    "assignedTo": "assigned_to",
}


def normalize_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    """Map known aliases onto canonical snake_case keys (sale items included)."""
    normalized = {}
    for key, value in data.items():
        if key == "items" and isinstance(value, list):
            value = [normalize_keys(item) if isinstance(item, Mapping) else item for item in value]
        normalized[_KEY_ALIASES.get(key, key)] = value
    return normalized


class RecordSchema:
    """JSON Schema validator for one record kind."""

    def __init__(self, kind: str, schema: dict[str, Any]) -> None:
        self.kind = kind
        self.schema = schema
        self._validator = jsonschema.Draft7Validator(schema)

    def validate(self, data: Mapping[str, Any]) -> list[str]:
        """Return validation errors for ``data`` (empty when valid)."""
        errors = []
        for error in self._validator.iter_errors(dict(data)):
            error_path = " -> ".join(str(p) for p in error.absolute_path) if error.absolute_path else "root"
            errors.append(f"[{error_path}] {error.message}")
        return errors

    def check(self, data: Any) -> dict[str, Any]:
        """Normalize and validate ``data``, raising ``InvalidRecord`` on failure."""
        if not isinstance(data, Mapping):
            raise InvalidRecord(self.kind, f"expected a mapping, got {type(data).__name__}")

        normalized = normalize_keys(data)
        errors = self.validate(normalized)
        if errors:
            raise InvalidRecord(self.kind, "; ".join(errors), record_id=normalized.get("id"), errors=errors)
        return normalized


_SCHEMAS = {kind: RecordSchema(kind, schema) for kind, schema in RECORD_SCHEMAS.items()}


def _instant(kind: str, data: Mapping[str, Any], key: str, *, required: bool = True) -> datetime | None:
    value = data.get(key)
    if value is None:
        if required:
            raise InvalidRecord(kind, f"missing timestamp '{key}'", record_id=data.get("id"))
        return None

    # YAML loaders turn bare dates into date objects
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    try:
        return parse_utc_iso8601(value)
    except ValueError as exc:
        raise InvalidRecord(kind, f"bad timestamp '{key}': {value!r}", record_id=data.get("id")) from exc


def _decimal(kind: str, data: Mapping[str, Any], key: str) -> Decimal:
    value = data.get(key)
    try:
        # str() first so floats keep their printed value instead of binary noise
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidRecord(kind, f"bad amount '{key}': {value!r}", record_id=data.get("id")) from exc
    if not amount.is_finite():
        raise InvalidRecord(kind, f"bad amount '{key}': {value!r}", record_id=data.get("id"))
    return amount


def _iso(dt: datetime | None) -> str | None:
    return format_utc_iso8601(dt) if dt is not None else None


@dataclass(frozen=True)
class SaleItem:
    product_id: str
    product_name: str
    quantity: int
    price: Decimal = Decimal("0")

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "price": str(self.price),
        }


@dataclass(frozen=True)
class Sale:
    """A point-of-sale transaction. Immutable once completed."""

    id: str
    date: datetime
    total: Decimal
    status: SaleStatus
    items: tuple[SaleItem, ...] = ()
    payment_method: str | None = None

    @classmethod
    def from_dict(cls, data: Any) -> Sale:
        record = _SCHEMAS["sale"].check(data)
        items = []
        for item in record.get("items") or []:
            items.append(
                SaleItem(
                    product_id=str(item["product_id"]),
                    product_name=item.get("product_name", ""),
                    quantity=item["quantity"],
                    price=_decimal("sale", item, "price") if "price" in item else Decimal("0"),
                )
            )
        return cls(
            id=str(record["id"]),
            date=_instant("sale", record, "date"),  # type: ignore[arg-type]
            total=_decimal("sale", record, "total"),
            status=SaleStatus(record["status"]),
            items=tuple(items),
            payment_method=record.get("payment_method"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": _iso(self.date),
            "total": str(self.total),
            "status": self.status.value,
            "items": [item.to_dict() for item in self.items],
            "payment_method": self.payment_method,
        }


@dataclass(frozen=True)
class Expense:
    """A bill to pay. Marked paid externally."""

    id: str
    created_at: datetime
    amount: Decimal
    status: ExpenseStatus
    name: str = ""
    category: str = ""
    due_date: datetime | None = None

    @classmethod
    def from_dict(cls, data: Any) -> Expense:
        record = _SCHEMAS["expense"].check(data)
        return cls(
            id=str(record["id"]),
            created_at=_instant("expense", record, "created_at"),  # type: ignore[arg-type]
            amount=_decimal("expense", record, "amount"),
            status=ExpenseStatus(record["status"]),
            name=record.get("name", ""),
            category=record.get("category", ""),
            due_date=_instant("expense", record, "due_date", required=False),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "created_at": _iso(self.created_at),
            "amount": str(self.amount),
            "status": self.status.value,
            "name": self.name,
            "category": self.category,
            "due_date": _iso(self.due_date),
        }


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    quantity: int
    price: Decimal | None = None
    category: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> Product:
        record = _SCHEMAS["product"].check(data)
        return cls(
            id=str(record["id"]),
            name=record["name"],
            quantity=record["quantity"],
            price=_decimal("product", record, "price") if record.get("price") is not None else None,
            category=record.get("category", ""),
        )


@dataclass(frozen=True)
class SupportConversation:
    """A support chat. Lifecycle: open, optionally transferred, resolved.

    ``first_response_at`` and ``resolved_at`` are set at most once and never
    precede ``opened_at``.
    """

    id: str
    opened_at: datetime
    first_response_at: datetime | None = None
    resolved_at: datetime | None = None
    transferred: bool = False
    tags: tuple[str, ...] = ()
    team_id: str | None = None
    assigned_to: str | None = None

    @property
    def is_open(self) -> bool:
        return self.resolved_at is None

    @classmethod
    def from_dict(cls, data: Any) -> SupportConversation:
        kind = "support_conversation"
        if isinstance(data, Mapping):
            data = normalize_keys(data)
            # the hosted backend names the opening instant created_at
            if "opened_at" not in data and "created_at" in data:
                data["opened_at"] = data.pop("created_at")
        record = _SCHEMAS[kind].check(data)
        opened_at = _instant(kind, record, "opened_at")
        first_response_at = _instant(kind, record, "first_response_at", required=False)
        resolved_at = _instant(kind, record, "resolved_at", required=False)

        for key, value in (("first_response_at", first_response_at), ("resolved_at", resolved_at)):
            if value is not None and value < opened_at:  # type: ignore[operator]
                raise InvalidRecord(kind, f"'{key}' precedes 'opened_at'", record_id=record["id"])

        # a tag set: drop repeats, keep first-seen order
        tags = tuple(dict.fromkeys(str(tag) for tag in record.get("tags") or []))
        team_id = record.get("team_id")

        return cls(
            id=str(record["id"]),
            opened_at=opened_at,  # type: ignore[arg-type]
            first_response_at=first_response_at,
            resolved_at=resolved_at,
            transferred=record.get("transferred", False),
            tags=tags,
            team_id=str(team_id) if team_id is not None else None,
            assigned_to=record.get("assigned_to"),
        )


@dataclass(frozen=True)
class Tag:
    """Display metadata for a support tag."""

    id: str
    name: str
    color: str = UNKNOWN_TAG_COLOR

    @classmethod
    def from_dict(cls, data: Any) -> Tag:
        record = _SCHEMAS["tag"].check(data)
        return cls(id=str(record["id"]), name=record["name"], color=record.get("color") or UNKNOWN_TAG_COLOR)


@dataclass(frozen=True)
class Team:
    id: str
    name: str

    @classmethod
    def from_dict(cls, data: Any) -> Team:
        record = _SCHEMAS["team"].check(data)
        return cls(id=str(record["id"]), name=record["name"])
