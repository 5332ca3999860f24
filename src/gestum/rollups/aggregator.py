"""Windowed aggregation of sales, expenses and support conversations.

Every function here is a pure reduction over the snapshot it is given: no
accumulator survives between calls, so identical inputs always produce
identical results and shards of a snapshot can be reduced independently and
combined afterwards.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any, Iterable, Sequence

from ..core.records import UNKNOWN_TAG_COLOR, Expense, Product, Sale, SaleStatus, SupportConversation
from ..core.time import localize_utc_to_tz
from .filters import is_cash_in, is_cash_out
from .time_windows import DEFAULT_TIMEZONE, Window, rolling_window

if TYPE_CHECKING:
    from ..core.source import Directory

__all__ = [
    "AgentCount",
    "CashFlow",
    "DailySales",
    "MetricsSnapshot",
    "SalesReport",
    "TagCount",
    "TeamCount",
    "TopProduct",
    "compute_cash_flow",
    "compute_cash_flow_sharded",
    "compute_daily_sales",
    "compute_sales_report",
    "compute_support_metrics",
]

ZERO = Decimal("0")
UNKNOWN_TEAM_NAME = "Unknown"
UNKNOWN_TAG_NAME = "?"
RECENT_SALES_LIMIT = 10

_MICROSECONDS_PER_MINUTE = Decimal(60_000_000)
_ONE_MICROSECOND = timedelta(microseconds=1)


def _round_half_up(value: Decimal) -> int:
    """Round to a whole number the way the dashboards display it (.5 rounds up)."""
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# ============================================================================
# Cash flow
# ============================================================================


@dataclass(frozen=True)
class CashFlow:
    """Cash in and out over a window.

    Attributes
    ----------
    cash_in : Decimal
        Sum of completed sale totals
    cash_out : Decimal
        Sum of paid expense amounts
    """

    cash_in: Decimal = ZERO
    cash_out: Decimal = ZERO

    @property
    def balance(self) -> Decimal:
        return self.cash_in - self.cash_out

    def __add__(self, other: CashFlow) -> CashFlow:
        if not isinstance(other, CashFlow):
            return NotImplemented
        return CashFlow(cash_in=self.cash_in + other.cash_in, cash_out=self.cash_out + other.cash_out)

    def to_dict(self) -> dict[str, Any]:
        return {
            "cash_in": str(self.cash_in),
            "cash_out": str(self.cash_out),
            "balance": str(self.balance),
        }


def compute_cash_flow(
    sales: Iterable[Sale],
    expenses: Iterable[Expense],
    window: Window,
) -> CashFlow:
    """Compute cash in, cash out and balance for a window.

    Parameters
    ----------
    sales
        Sales snapshot; only completed sales dated inside the window count
    expenses
        Expenses snapshot; only paid expenses created inside the window count
    window
        Inclusive window

    Returns
    -------
    CashFlow
        Exact decimal totals; empty inputs give zeros
    """
    cash_in = sum((sale.total for sale in sales if is_cash_in(sale, window)), ZERO)
    cash_out = sum((expense.amount for expense in expenses if is_cash_out(expense, window)), ZERO)
    return CashFlow(cash_in=cash_in, cash_out=cash_out)


def compute_cash_flow_sharded(
    shards: Iterable[tuple[Iterable[Sale], Iterable[Expense]]],
    window: Window,
) -> CashFlow:
    """Reduce each ``(sales, expenses)`` shard separately and combine the partial sums."""
    return sum((compute_cash_flow(sales, expenses, window) for sales, expenses in shards), CashFlow())


# ============================================================================
# Support metrics
# ============================================================================


@dataclass(frozen=True)
class TeamCount:
    team_id: str
    team_name: str
    count: int


@dataclass(frozen=True)
class TagCount:
    tag_id: str
    tag_name: str
    tag_color: str
    count: int


@dataclass(frozen=True)
class AgentCount:
    user_id: str
    count: int


@dataclass(frozen=True)
class MetricsSnapshot:
    """Support KPIs derived from a conversation snapshot.

    Averages are whole minutes and the transfer rate a whole percent, as
    displayed. Group-bys keep first-seen order.
    """

    total_conversations: int = 0
    open_conversations: int = 0
    avg_first_response_minutes: int = 0
    avg_resolution_minutes: int = 0
    transfer_rate: int = 0
    chats_by_team: tuple[TeamCount, ...] = ()
    chats_by_tag: tuple[TagCount, ...] = ()
    chats_by_agent: tuple[AgentCount, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_conversations": self.total_conversations,
            "open_conversations": self.open_conversations,
            "avg_first_response_minutes": self.avg_first_response_minutes,
            "avg_resolution_minutes": self.avg_resolution_minutes,
            "transfer_rate": self.transfer_rate,
            "chats_by_team": [vars(group) for group in self.chats_by_team],
            "chats_by_tag": [vars(group) for group in self.chats_by_tag],
            "chats_by_agent": [vars(group) for group in self.chats_by_agent],
        }


def _mean_minutes(durations: list[timedelta]) -> int:
    if not durations:
        return 0
    total_us = sum(duration // _ONE_MICROSECOND for duration in durations)
    return _round_half_up(Decimal(total_us) / len(durations) / _MICROSECONDS_PER_MINUTE)


def compute_support_metrics(
    conversations: Sequence[SupportConversation],
    directory: Directory | None = None,
) -> MetricsSnapshot:
    """Compute support KPIs over a snapshot of conversations.

    Parameters
    ----------
    conversations
        Conversation snapshot
    directory
        Source of tag/team display names; unknown ids fall back to
        placeholder names

    Returns
    -------
    MetricsSnapshot
        KPIs; an empty snapshot yields all zeros and empty groups
    """
    total = len(conversations)
    if total == 0:
        return MetricsSnapshot()

    first_responses = [
        c.first_response_at - c.opened_at for c in conversations if c.first_response_at is not None
    ]
    resolutions = [c.resolved_at - c.opened_at for c in conversations if c.resolved_at is not None]
    transferred = sum(1 for c in conversations if c.transferred)

    team_counts: dict[str, int] = defaultdict(int)
    tag_counts: dict[str, int] = defaultdict(int)
    agent_counts: dict[str, int] = defaultdict(int)
    for conversation in conversations:
        if conversation.team_id is not None:
            team_counts[conversation.team_id] += 1
        for tag_id in conversation.tags:
            tag_counts[tag_id] += 1
        if conversation.assigned_to:
            agent_counts[conversation.assigned_to] += 1

    chats_by_team = []
    for team_id, count in team_counts.items():
        team = directory.get_team(team_id) if directory is not None else None
        chats_by_team.append(TeamCount(team_id, team.name if team else UNKNOWN_TEAM_NAME, count))

    chats_by_tag = []
    for tag_id, count in tag_counts.items():
        tag = directory.get_tag(tag_id) if directory is not None else None
        if tag is None:
            chats_by_tag.append(TagCount(tag_id, UNKNOWN_TAG_NAME, UNKNOWN_TAG_COLOR, count))
        else:
            chats_by_tag.append(TagCount(tag_id, tag.name, tag.color, count))

    return MetricsSnapshot(
        total_conversations=total,
        open_conversations=sum(1 for c in conversations if c.is_open),
        avg_first_response_minutes=_mean_minutes(first_responses),
        avg_resolution_minutes=_mean_minutes(resolutions),
        transfer_rate=_round_half_up(Decimal(100 * transferred) / total),
        chats_by_team=tuple(chats_by_team),
        chats_by_tag=tuple(chats_by_tag),
        chats_by_agent=tuple(AgentCount(user_id, count) for user_id, count in agent_counts.items()),
    )


# ============================================================================
# Sales reports
# ============================================================================


@dataclass(frozen=True)
class DailySales:
    day: date
    total: Decimal
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"day": self.day.isoformat(), "total": str(self.total), "count": self.count}


def compute_daily_sales(
    sales: Iterable[Sale],
    reference: datetime,
    days: int = 7,
    timezone_str: str = DEFAULT_TIMEZONE,
) -> list[DailySales]:
    """Completed sales per local calendar day, for the ``days`` days ending on the reference day.

    Returns
    -------
    list[DailySales]
        One entry per day, oldest first; days without sales are zero
    """
    if days <= 0:
        raise ValueError(f"days must be positive, got {days}")

    last_day = localize_utc_to_tz(reference, timezone_str).date()
    totals: dict[date, Decimal] = {last_day - timedelta(days=offset): ZERO for offset in range(days - 1, -1, -1)}
    counts: dict[date, int] = dict.fromkeys(totals, 0)

    for sale in sales:
        if sale.status is not SaleStatus.COMPLETED:
            continue
        day = localize_utc_to_tz(sale.date, timezone_str).date()
        if day in totals:
            totals[day] += sale.total
            counts[day] += 1

    return [DailySales(day=day, total=total, count=counts[day]) for day, total in totals.items()]


@dataclass(frozen=True)
class TopProduct:
    product_id: str
    name: str
    quantity: int


@dataclass(frozen=True)
class SalesReport:
    """Sales summary over the last ``days`` days."""

    window: Window
    days: int
    total: Decimal
    average_per_day: Decimal
    sales_count: int
    top_product: TopProduct | None = None
    recent_sales: tuple[Sale, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "window": self.window.to_dict(),
            "days": self.days,
            "total": str(self.total),
            "average_per_day": str(self.average_per_day),
            "sales_count": self.sales_count,
            "top_product": vars(self.top_product) if self.top_product else None,
            "recent_sales": [sale.to_dict() for sale in self.recent_sales],
        }


def compute_sales_report(
    sales: Iterable[Sale],
    products: Iterable[Product],
    days: int,
    reference: datetime,
) -> SalesReport:
    """Summarize completed sales over the last ``days`` days before ``reference``.

    The top product is the one with the most units sold across sale items;
    ties go to the product seen last.
    """
    if days <= 0:
        raise ValueError(f"days must be positive, got {days}")

    window = rolling_window(days, reference)
    selected = [sale for sale in sales if is_cash_in(sale, window)]
    total = sum((sale.total for sale in selected), ZERO)

    average = ZERO
    if selected:
        average = (total / days).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    units: dict[str, int] = defaultdict(int)
    item_names: dict[str, str] = {}
    for sale in selected:
        for item in sale.items:
            units[item.product_id] += item.quantity
            item_names.setdefault(item.product_id, item.product_name)

    top_product = None
    if units:
        # on equal quantities the product seen last wins
        product_id: str | None = None
        for pid, quantity in units.items():
            if product_id is None or quantity >= units[product_id]:
                product_id = pid
        names = {product.id: product.name for product in products}
        top_product = TopProduct(
            product_id=product_id,
            name=names.get(product_id) or item_names[product_id],
            quantity=units[product_id],
        )

    recent = sorted(selected, key=lambda sale: sale.date)[-RECENT_SALES_LIMIT:]

    return SalesReport(
        window=window,
        days=days,
        total=total,
        average_per_day=average,
        sales_count=len(selected),
        top_product=top_product,
        recent_sales=tuple(reversed(recent)),
    )
