"""Record Source and Directory collaborators.

The aggregation core never fetches or writes records itself: it is handed
immutable snapshots by a ``RecordSource`` and resolves tag/team display
metadata through a ``Directory``. ``SnapshotRecordSource`` is the file-backed
implementation used by the CLI and tests.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Mapping, Protocol, Sequence, TypeVar

import yaml

from ..observability.loguru_config import get_logger
from .records import Expense, InvalidRecord, Product, Sale, SupportConversation, Tag, Team

__all__ = [
    "Directory",
    "LoadReport",
    "RecordSource",
    "SnapshotError",
    "SnapshotRecordSource",
    "StaticDirectory",
]

T = TypeVar("T")

source_logger = get_logger("source")


class SnapshotError(Exception):
    """Raised when a snapshot file cannot be read or is not a mapping."""


class RecordSource(Protocol):
    """Read-only snapshot accessors. The core never writes through them."""

    def list_sales(self) -> Sequence[Sale]: ...

    def list_expenses(self) -> Sequence[Expense]: ...

    def list_products(self) -> Sequence[Product]: ...

    def list_support_conversations(self) -> Sequence[SupportConversation]: ...


class Directory(Protocol):
    """Display metadata for grouping results."""

    def get_tag(self, tag_id: str) -> Tag | None: ...

    def get_team(self, team_id: str) -> Team | None: ...


class StaticDirectory:
    """In-memory ``Directory`` built from known tags and teams."""

    def __init__(self, tags: Sequence[Tag] = (), teams: Sequence[Team] = ()) -> None:
        self._tags = {tag.id: tag for tag in tags}
        self._teams = {team.id: team for team in teams}

    def get_tag(self, tag_id: str) -> Tag | None:
        return self._tags.get(tag_id)

    def get_team(self, team_id: str) -> Team | None:
        return self._teams.get(team_id)


@dataclass
class LoadReport:
    """Outcome of loading a snapshot.

    Malformed records are skipped rather than aborting the whole load, so the
    report carries how many were kept and how many were dropped per kind.
    """

    loaded: dict[str, int] = field(default_factory=dict)
    skipped: dict[str, int] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)

    @property
    def skipped_total(self) -> int:
        return sum(self.skipped.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "loaded": dict(self.loaded),
            "skipped": dict(self.skipped),
            "skipped_total": self.skipped_total,
            "errors": list(self.errors),
        }


# section name in the snapshot -> record factory
_SECTIONS: dict[str, Callable[[Any], Any]] = {
    "sales": Sale.from_dict,
    "expenses": Expense.from_dict,
    "products": Product.from_dict,
    "support_conversations": SupportConversation.from_dict,
    "tags": Tag.from_dict,
    "teams": Team.from_dict,
}


class SnapshotRecordSource:
    """Record source backed by a JSON or YAML snapshot.

    The snapshot is a mapping with optional sections ``sales``, ``expenses``,
    ``products``, ``support_conversations``, ``tags`` and ``teams``, each a
    list of raw records. Accessors return tuples, so callers cannot mutate
    the snapshot they were handed. Call ``reload()`` to pick up a new file
    version; nothing is cached across reloads.

    Example:
        >>> source = SnapshotRecordSource.from_file(Path("snapshot.json"))
        >>> source.report.skipped_total
        0
    """

    def __init__(self, data: Mapping[str, Any], *, path: Path | None = None) -> None:
        self.path = path
        self.report = LoadReport()
        self._records: dict[str, tuple[Any, ...]] = {}
        self._load(data)

    @classmethod
    def from_file(cls, path: Path | str) -> SnapshotRecordSource:
        path = Path(path)
        return cls(_read_snapshot(path), path=path)

    def reload(self) -> LoadReport:
        """Re-read the backing file and replace the snapshot."""
        if self.path is None:
            raise SnapshotError("Snapshot was built in memory; there is no file to reload")
        self.report = LoadReport()
        self._load(_read_snapshot(self.path))
        return self.report

    def _load(self, data: Mapping[str, Any]) -> None:
        for section, factory in _SECTIONS.items():
            raw_records = data.get(section) or []
            if not isinstance(raw_records, list):
                raise SnapshotError(f"Section '{section}' must be a list, got {type(raw_records).__name__}")
            self._records[section] = tuple(self._parse_section(section, raw_records, factory))

    def _parse_section(self, section: str, raw_records: list[Any], factory: Callable[[Any], T]) -> list[T]:
        records: list[T] = []
        skipped = 0

        for raw in raw_records:
            try:
                records.append(factory(raw))
            except InvalidRecord as exc:
                skipped += 1
                self.report.errors.append(str(exc))
                source_logger.warning(
                    "Skipping malformed record",
                    section=section,
                    record_id=exc.record_id,
                    errors=exc.errors,
                )

        self.report.loaded[section] = len(records)
        self.report.skipped[section] = skipped
        return records

    def list_sales(self) -> tuple[Sale, ...]:
        return self._records["sales"]

    def list_expenses(self) -> tuple[Expense, ...]:
        return self._records["expenses"]

    def list_products(self) -> tuple[Product, ...]:
        return self._records["products"]

    def list_support_conversations(self) -> tuple[SupportConversation, ...]:
        return self._records["support_conversations"]

    def directory(self) -> StaticDirectory:
        """Directory of the tags and teams carried by this snapshot."""
        return StaticDirectory(tags=self._records["tags"], teams=self._records["teams"])


def _read_snapshot(path: Path) -> Mapping[str, Any]:
    """Read a snapshot file; ``.yaml``/``.yml`` as YAML, everything else as JSON."""
    try:
        with open(path, encoding="utf-8") as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                # Decimal floats keep currency amounts exact
                data = json.load(f, parse_float=Decimal)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise SnapshotError(f"Cannot parse snapshot {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise SnapshotError(f"Snapshot {path} must contain a mapping, got {type(data).__name__}")
    return data
