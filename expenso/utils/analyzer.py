from __future__ import annotations

import math
from collections import defaultdict
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from expenso.core.errors import InvalidBudgetError
from expenso.models.advisory import PacingState
from expenso.models.transaction import Transaction, TransactionType

TransactionLike = Union[Transaction, Mapping[str, Any]]


class WeekStart(int, Enum):
    """Week-start convention, valued as Python's date.weekday()."""

    MONDAY = 0
    SUNDAY = 6

    @classmethod
    def parse(cls, value: Union[str, "WeekStart"]) -> "WeekStart":
        if isinstance(value, WeekStart):
            return value
        return cls[value.strip().upper()]


def _field(tx: TransactionLike, name: str) -> Any:
    if isinstance(tx, Mapping):
        return tx.get(name)
    return getattr(tx, name)


def _as_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    # ISO strings from the store; a time component may be present
    return datetime.fromisoformat(str(value)[:10]).date()


def _type_of(tx: TransactionLike) -> str:
    value = _field(tx, "type")
    return value.value if isinstance(value, TransactionType) else str(value)


def compute_weekly_pacing(
    transactions: Iterable[TransactionLike],
    weekly_budget: float,
    reference_date: Optional[Union[date, datetime]] = None,
    week_start: Union[WeekStart, str] = WeekStart.SUNDAY,
) -> PacingState:
    """
    Spending pace for the week containing ``reference_date``.

    velocity = (spent / budget) / (days_elapsed / 7); 1.0 means the budget
    runs out exactly at the end of the week.
    """
    if weekly_budget is None or not math.isfinite(weekly_budget) or weekly_budget <= 0:
        raise InvalidBudgetError(weekly_budget)

    today = _as_date(reference_date) if reference_date is not None else date.today()
    start_day = WeekStart.parse(week_start)

    offset = (today.weekday() - start_day.value) % 7
    week_begin = today - timedelta(days=offset)
    days_elapsed = max(1, offset + 1)

    total = 0.0
    for tx in transactions:
        if _type_of(tx) != TransactionType.EXPENSE.value:
            continue
        if _as_date(_field(tx, "date")) < week_begin:
            continue
        total += float(_field(tx, "amount") or 0)

    if total == 0:
        velocity = 0.0
    else:
        velocity = (total / weekly_budget) / (days_elapsed / 7)

    return PacingState(
        weekly_expense_total=total,
        days_elapsed_in_week=days_elapsed,
        velocity=velocity,
        weekly_budget=float(weekly_budget),
        week_start=week_begin,
    )


class FinanceAnalyzer:
    """Dashboard totals, trends and search over a user's transactions."""

    def totals(self, transactions: Iterable[TransactionLike]) -> Dict[str, float]:
        income = 0.0
        expenses = 0.0
        for tx in transactions:
            amount = float(_field(tx, "amount") or 0)
            if _type_of(tx) == TransactionType.INCOME.value:
                income += amount
            else:
                expenses += amount
        return {
            "total_income": round(income, 2),
            "total_expenses": round(expenses, 2),
            "balance": round(income - expenses, 2),
        }

    def category_totals(self, transactions: Iterable[TransactionLike]) -> Dict[str, float]:
        """Expense totals per category, largest first."""
        totals: Dict[str, float] = defaultdict(float)
        for tx in transactions:
            if _type_of(tx) == TransactionType.EXPENSE.value:
                totals[_field(tx, "category")] += float(_field(tx, "amount") or 0)
        ordered = sorted(totals.items(), key=lambda item: item[1], reverse=True)
        return {cat: round(total, 2) for cat, total in ordered}

    def monthly_trends(self, transactions: Iterable[TransactionLike]) -> List[Dict[str, Any]]:
        months: Dict[str, Dict[str, Any]] = {}
        for tx in transactions:
            key = _as_date(_field(tx, "date")).strftime("%Y-%m")
            bucket = months.setdefault(key, {"month": key, "income": 0.0, "expense": 0.0})
            amount = float(_field(tx, "amount") or 0)
            if _type_of(tx) == TransactionType.INCOME.value:
                bucket["income"] += amount
            else:
                bucket["expense"] += amount
        return [
            {"month": m["month"], "income": round(m["income"], 2), "expense": round(m["expense"], 2)}
            for _, m in sorted(months.items())
        ]

    def search(
        self,
        transactions: Iterable[TransactionLike],
        query: str = "",
        type: Optional[Union[TransactionType, str]] = None,
    ) -> List[TransactionLike]:
        """Case-insensitive match on category or description, optionally by type."""
        needle = (query or "").strip().lower()
        wanted = type.value if isinstance(type, TransactionType) else type

        results = []
        for tx in transactions:
            if wanted and _type_of(tx) != wanted:
                continue
            if needle:
                haystack = f"{_field(tx, 'category') or ''} {_field(tx, 'description') or ''}".lower()
                if needle not in haystack:
                    continue
            results.append(tx)
        return results

    def summarize(self, transactions: Iterable[TransactionLike]) -> Dict[str, Any]:
        transactions = list(transactions)
        if not transactions:
            return {
                "total_income": 0.0,
                "total_expenses": 0.0,
                "balance": 0.0,
                "category_totals": {},
                "monthly_trends": [],
                "transaction_count": 0,
            }

        summary: Dict[str, Any] = dict(self.totals(transactions))
        summary["category_totals"] = self.category_totals(transactions)
        summary["monthly_trends"] = self.monthly_trends(transactions)
        summary["transaction_count"] = len(transactions)
        return summary
