from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional

import pandas as pd

from schemas import RECURRING_TAG, TransactionType

WEEKDAYS_ES = ["lun", "mar", "mié", "jue", "vie", "sáb", "dom"]


def month_key(value) -> str:
    """'YYYY-MM' for a date, datetime or timestamp."""
    return f"{value.year}-{value.month:02d}"


def filter_month(df: pd.DataFrame, key: str) -> pd.DataFrame:
    if df.empty:
        return df
    return df[df["Month"] == key]


def month_totals(df: pd.DataFrame) -> dict:
    """Income, expense and balance of the given rows (currencies are not converted)."""
    if df.empty:
        return {"income": 0.0, "expense": 0.0, "balance": 0.0}

    income = float(df[df["Type"] == TransactionType.INCOME.value]["Amount"].sum())
    expense = float(df[df["Type"] == TransactionType.EXPENSE.value]["Amount"].sum())
    return {"income": income, "expense": expense, "balance": income - expense}


def available_months(df: pd.DataFrame, today: Optional[date] = None) -> List[str]:
    """Months with transactions plus the current month, newest first."""
    today = today or date.today()
    months = set(df["Month"].unique().tolist()) if not df.empty else set()
    months.add(month_key(today))
    return sorted(months, reverse=True)


def category_breakdown(df: pd.DataFrame, top_n: int = 5) -> pd.DataFrame:
    """Expense totals per category, largest first."""
    expenses = df[df["Type"] == TransactionType.EXPENSE.value] if not df.empty else df
    if expenses.empty:
        return pd.DataFrame(columns=["Category", "Amount"])

    by_cat = (
        expenses.groupby("Category", sort=False)["Amount"]
        .sum()
        .reset_index()
        .sort_values("Amount", ascending=False, kind="stable")
    )
    return by_cat.head(top_n).reset_index(drop=True)


def daily_expense_trend(df: pd.DataFrame, today: Optional[date] = None) -> pd.DataFrame:
    """
    Expense totals for each of the last seven calendar days, today included.
    Days without expenses are kept with a zero so the chart always has 7 bars.
    """
    today = today or date.today()
    if isinstance(today, datetime):
        today = today.date()
    days = [today - timedelta(days=offset) for offset in range(6, -1, -1)]

    totals = {}
    if not df.empty:
        expenses = df[df["Type"] == TransactionType.EXPENSE.value]
        totals = expenses.groupby(expenses["Date"].dt.date)["Amount"].sum().to_dict()

    return pd.DataFrame({
        "Day": days,
        "Label": [WEEKDAYS_ES[d.weekday()] for d in days],
        "Amount": [float(totals.get(d, 0.0)) for d in days],
    })


def budget_breakdown(df_month: pd.DataFrame, recurring_items: Iterable) -> dict:
    """
    Month budget: configured fixed items (enabled only) next to what was
    actually recorded, split into fixed (tagged recurrente) and variable.
    """
    items = [i for i in recurring_items if getattr(i, "is_enabled", True)]
    fixed_income_config = sum(i.amount for i in items if i.type == TransactionType.INCOME.value)
    fixed_expense_config = sum(i.amount for i in items if i.type == TransactionType.EXPENSE.value)

    totals = month_totals(df_month)

    real_fixed = 0.0
    real_variable = 0.0
    if not df_month.empty:
        expenses = df_month[df_month["Type"] == TransactionType.EXPENSE.value]
        is_fixed = expenses["Tags"].apply(lambda tags: RECURRING_TAG in (tags or [])).astype(bool)
        real_fixed = float(expenses[is_fixed]["Amount"].sum())
        real_variable = float(expenses[~is_fixed]["Amount"].sum())

    return {
        "income": totals["income"],
        "expense": totals["expense"],
        "balance": totals["balance"],
        "fixed_income_config": float(fixed_income_config),
        "fixed_expense_config": float(fixed_expense_config),
        "real_fixed_expense": real_fixed,
        "real_variable_expense": real_variable,
    }


def general_stats(df: pd.DataFrame) -> dict:
    if df.empty:
        return {"count": 0, "first_date": None}
    return {"count": int(len(df)), "first_date": df["Date"].min().to_pydatetime()}


def _plain(amount: float) -> str:
    return str(int(amount)) if float(amount).is_integer() else str(amount)


def _latest(df: pd.DataFrame, limit: int) -> pd.DataFrame:
    return df.sort_values("Date", ascending=False, kind="stable").head(limit)


def insights_history(df: pd.DataFrame, limit: int = 50) -> List[str]:
    """One line per transaction, as sent to the model for monthly tips."""
    if df.empty:
        return []
    return [
        f"{row.Date.isoformat()}: {row.Type} de {_plain(row.Amount)} {row.Currency} en {row.Category} ({row.Description})"
        for row in _latest(df, limit).itertuples()
    ]


def profile_history(df: pd.DataFrame, limit: int = 100) -> List[str]:
    if df.empty:
        return []
    return [
        f"{row.Date.isoformat()}: {row.Type} ${_plain(row.Amount)} ({row.Category})"
        for row in _latest(df, limit).itertuples()
    ]
