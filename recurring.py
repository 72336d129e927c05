"""
recurring.py
------------
Monthly suggestion of fixed income and fixed costs.  At the start of each
month the app offers to add every enabled recurring item as a transaction,
at most once per month.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional

import pandas as pd
from sqlalchemy.orm import Session

from insights import month_key
from ledger import (
    add_transactions,
    get_last_recurring_prompt,
    list_recurring_items,
    set_last_recurring_prompt,
)
from schemas import DEFAULT_PROJECT, RECURRING_TAG, TransactionIn, TransactionType


def _enabled(items: Iterable) -> list:
    return [i for i in items if i.is_enabled]


def should_suggest(items: Iterable, df: pd.DataFrame, last_prompt: Optional[str], today: Optional[datetime] = None) -> bool:
    if not _enabled(items):
        return False

    current_month = month_key(today or datetime.now())
    # Already asked this month, whatever the answer was
    if last_prompt == current_month:
        return False

    if df.empty:
        return True
    month_rows = df[df["Date"].dt.to_period("M").astype(str) == current_month]
    already_generated = month_rows["Tags"].apply(lambda tags: RECURRING_TAG in (tags or [])).any()
    return not already_generated


def generate_recurring_transactions(items: Iterable, now: Optional[datetime] = None) -> List[TransactionIn]:
    now = now or datetime.now()
    return [
        TransactionIn(
            amount=item.amount,
            currency=item.currency,
            type=item.type,
            category=item.category,
            subcategory="Fijo",
            date=now,
            description=f"{item.name} (Mensual)",
            payment_method="Automático",
            project_id=DEFAULT_PROJECT,
            tags=[RECURRING_TAG],
        )
        for item in _enabled(items)
    ]


def suggestion_totals(items: Iterable) -> dict:
    enabled = _enabled(items)
    return {
        "income": float(sum(i.amount for i in enabled if i.type == TransactionType.INCOME.value)),
        "expense": float(sum(i.amount for i in enabled if i.type == TransactionType.EXPENSE.value)),
        "count": len(enabled),
    }


def pending_suggestion(db: Session, df: pd.DataFrame, today: Optional[datetime] = None) -> bool:
    return should_suggest(list_recurring_items(db), df, get_last_recurring_prompt(db), today)


def confirm_suggestion(db: Session, now: Optional[datetime] = None) -> int:
    """Add this month's recurring transactions and mark the month as prompted."""
    now = now or datetime.now()
    count = add_transactions(db, generate_recurring_transactions(list_recurring_items(db), now))
    set_last_recurring_prompt(db, month_key(now))
    return count


def dismiss_suggestion(db: Session, now: Optional[datetime] = None) -> None:
    # Skipping still counts as prompted, so the dialog stays away until next month
    set_last_recurring_prompt(db, month_key(now or datetime.now()))
