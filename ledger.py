"""
ledger.py
---------
Read/write helpers for transactions, recurring items, categories and
app settings.  Every function takes an open SQLAlchemy ``Session`` so the
Streamlit app, the tools API and the tests can share them.
"""

from __future__ import annotations

import base64
from datetime import datetime
from typing import Iterable, List, Optional

import pandas as pd
from sqlalchemy.orm import Session

from database import AppSetting, Category, RecurringTransaction, Transaction
from schemas import (
    DEFAULT_CATEGORIES,
    INCOME_CATEGORY,
    PAYMENT_METHODS,
    RECURRING_TAG,
    Currency,
    ParsingResult,
    TransactionIn,
    TransactionType,
    UserFinancialProfile,
    UserSettings,
)

DATA_COLUMNS = [
    "ID", "Date", "Amount", "Currency", "Type", "Category", "Subcategory",
    "Description", "PaymentMethod", "Tags", "IsRecurring",
]

SETTINGS_KEY = "user_settings"
PROFILE_KEY = "user_profile"
LAST_PROMPT_KEY = "last_recurring_prompt"


class LedgerError(ValueError):
    """Base error for invalid ledger operations."""


class InvalidTransactionError(LedgerError):
    pass


class ProtectedCategoryError(LedgerError):
    pass


# --- Dates ---

def coerce_datetime(value, now: Optional[datetime] = None) -> datetime:
    """
    Parse ISO strings, dates or timestamps into a naive local datetime.
    Empty or unparseable values fall back to ``now``.
    """
    if value is None or value == "":
        return now or datetime.now()
    try:
        ts = pd.Timestamp(value)
    except (ValueError, TypeError):
        ts = pd.NaT
    if pd.isna(ts):
        return now or datetime.now()
    dt = ts.to_pydatetime()
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


# --- Transactions ---

def normalize_parsing_result(
    result: ParsingResult,
    categories: List[str],
    now: Optional[datetime] = None,
) -> dict:
    """Turn the model's answer into editable form data."""
    is_income = result.type == TransactionType.INCOME.value

    if is_income:
        # Income always lands in 'Ingreso'; the specific kind becomes the subcategory
        category = INCOME_CATEGORY
        subcategory = result.category if result.category != INCOME_CATEGORY else (result.subcategory or "")
    else:
        category = result.category if result.category in categories else (categories[0] if categories else "Otros")
        subcategory = result.subcategory or ""

    try:
        currency = Currency(result.currency).value if result.currency else Currency.ARS.value
    except ValueError:
        currency = Currency.ARS.value

    return {
        "amount": result.amount,
        "currency": currency,
        "type": TransactionType.INCOME.value if is_income else TransactionType.EXPENSE.value,
        "category": category,
        "subcategory": subcategory,
        "date": coerce_datetime(result.date, now),
        "description": result.description,
        "payment_method": result.payment_method if result.payment_method in PAYMENT_METHODS else "Efectivo",
        "tags": list(result.tags or []),
    }


def apply_type_change(form: dict, new_type: str, categories: List[str]) -> dict:
    updated = dict(form)
    updated["type"] = new_type
    if new_type == TransactionType.INCOME.value:
        updated["category"] = INCOME_CATEGORY
    else:
        updated["category"] = categories[0] if categories else "Otros"
    return updated


REQUIRED_FIELDS = ["amount", "date", "category", "type", "payment_method", "description"]


def is_form_valid(form: dict) -> bool:
    return all(form.get(field) for field in REQUIRED_FIELDS)


def require_fields(form: dict) -> None:
    missing = [f for f in REQUIRED_FIELDS if not form.get(f)]
    if missing:
        raise InvalidTransactionError(f"Missing required fields: {', '.join(missing)}")


def build_transaction(form: dict, existing_id: Optional[str] = None) -> TransactionIn:
    require_fields(form)

    return TransactionIn(
        id=existing_id,
        amount=float(form["amount"]),
        currency=form.get("currency") or Currency.ARS.value,
        type=form.get("type") or TransactionType.EXPENSE.value,
        category=form.get("category") or "Otros",
        subcategory=form.get("subcategory") or "",
        date=coerce_datetime(form.get("date")),
        description=form.get("description") or "",
        payment_method=form.get("payment_method") or "Efectivo",
        tags=list(form.get("tags") or []),
    )


def save_transaction(db: Session, tx: TransactionIn) -> Transaction:
    """Insert a new transaction or replace the one with the same id."""
    values = tx.model_dump(mode="python")
    values["currency"] = tx.currency.value
    values["original_currency"] = tx.original_currency.value if tx.original_currency else None
    values["type"] = tx.type.value
    values["date"] = coerce_datetime(tx.date)

    row = db.get(Transaction, tx.id) if tx.id else None
    if row is None:
        if not values.get("id"):
            values.pop("id")
        row = Transaction(**values)
        db.add(row)
    else:
        for key, value in values.items():
            setattr(row, key, value)
    db.commit()
    db.refresh(row)
    return row


def add_transactions(db: Session, txs: Iterable[TransactionIn]) -> int:
    count = 0
    for tx in txs:
        save_transaction(db, tx)
        count += 1
    return count


def get_transaction(db: Session, transaction_id: str) -> Optional[Transaction]:
    return db.get(Transaction, transaction_id)


def delete_transaction(db: Session, transaction_id: str) -> bool:
    row = db.get(Transaction, transaction_id)
    if row is None:
        return False
    db.delete(row)
    db.commit()
    return True


def list_transactions(db: Session) -> List[Transaction]:
    return (
        db.query(Transaction)
        .order_by(Transaction.date.desc(), Transaction.created_at.desc())
        .all()
    )


def transaction_to_form(row: Transaction) -> dict:
    return {
        "amount": row.amount,
        "currency": row.currency,
        "type": row.type,
        "category": row.category,
        "subcategory": row.subcategory or "",
        "date": row.date,
        "description": row.description,
        "payment_method": row.payment_method,
        "tags": list(row.tags or []),
    }


def load_data(db: Session) -> pd.DataFrame:
    transactions = list_transactions(db)
    if not transactions:
        return pd.DataFrame(columns=DATA_COLUMNS)

    data = [{
        "ID": t.id,
        "Date": t.date,
        "Amount": t.amount,
        "Currency": t.currency,
        "Type": t.type,
        "Category": t.category or "Otros",
        "Subcategory": t.subcategory or "",
        "Description": t.description or "",
        "PaymentMethod": t.payment_method or "",
        "Tags": list(t.tags or []),
        "IsRecurring": RECURRING_TAG in (t.tags or []),
    } for t in transactions]

    df = pd.DataFrame(data, columns=DATA_COLUMNS)
    df["Date"] = pd.to_datetime(df["Date"])
    return df


# --- Recurring items ---

def list_recurring_items(db: Session) -> List[RecurringTransaction]:
    return db.query(RecurringTransaction).order_by(RecurringTransaction.position).all()


def add_recurring_item(
    db: Session,
    name: str,
    amount,
    type: str = TransactionType.EXPENSE.value,
    category: str = DEFAULT_CATEGORIES[0],
) -> Optional[RecurringTransaction]:
    if not name or not amount:
        return None

    final_category = INCOME_CATEGORY if type == TransactionType.INCOME.value else category
    position = db.query(RecurringTransaction).count()
    item = RecurringTransaction(
        name=name,
        amount=float(amount),
        currency=Currency.ARS.value,
        type=type,
        category=final_category,
        is_enabled=True,
        position=position,
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def remove_recurring_item(db: Session, item_id: str) -> bool:
    deleted = db.query(RecurringTransaction).filter(RecurringTransaction.id == item_id).delete()
    db.commit()
    return bool(deleted)


def set_recurring_enabled(db: Session, item_id: str, enabled: bool) -> None:
    item = db.get(RecurringTransaction, item_id)
    if item is not None:
        item.is_enabled = enabled
        db.commit()


# --- Categories ---

def ensure_default_categories(db: Session) -> None:
    if db.query(Category).first():
        return
    for name in DEFAULT_CATEGORIES:
        db.add(Category(name=name))
    db.commit()


def list_categories(db: Session) -> List[str]:
    return [c.name for c in db.query(Category).order_by(Category.id).all()]


def add_category(db: Session, name: str) -> bool:
    name = (name or "").strip()
    if not name or name in list_categories(db):
        return False
    db.add(Category(name=name))
    db.commit()
    return True


def remove_category(db: Session, name: str) -> bool:
    if name == INCOME_CATEGORY:
        raise ProtectedCategoryError("La categoría Ingreso no se puede eliminar.")
    deleted = db.query(Category).filter(Category.name == name).delete()
    db.commit()
    return bool(deleted)


# --- Settings ---

def get_setting(db: Session, key: str, default=None):
    row = db.get(AppSetting, key)
    return row.value if row is not None else default


def set_setting(db: Session, key: str, value) -> None:
    row = db.get(AppSetting, key)
    if row is None:
        db.add(AppSetting(key=key, value=value))
    else:
        row.value = value
    db.commit()


def get_user_settings(db: Session) -> UserSettings:
    return UserSettings(**get_setting(db, SETTINGS_KEY, {}))


def save_user_settings(db: Session, settings: UserSettings) -> None:
    set_setting(db, SETTINGS_KEY, settings.model_dump())


def get_user_profile(db: Session) -> Optional[UserFinancialProfile]:
    data = get_setting(db, PROFILE_KEY)
    return UserFinancialProfile(**data) if data else None


def save_user_profile(db: Session, profile: UserFinancialProfile) -> None:
    set_setting(db, PROFILE_KEY, profile.model_dump())


def get_last_recurring_prompt(db: Session) -> Optional[str]:
    return get_setting(db, LAST_PROMPT_KEY)


def set_last_recurring_prompt(db: Session, month: str) -> None:
    set_setting(db, LAST_PROMPT_KEY, month)


def clear_all_data(db: Session) -> None:
    """Wipe every table, then restore the default categories."""
    for model in (Transaction, RecurringTransaction, Category, AppSetting):
        db.query(model).delete()
    db.commit()
    ensure_default_categories(db)


# --- Avatar ---

def encode_avatar(data: bytes, mime_type: str = "image/png") -> str:
    """Uploaded image bytes -> data URL stored in the user settings."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def decode_avatar(data_url: Optional[str]) -> Optional[bytes]:
    if not data_url or "," not in data_url:
        return None
    return base64.b64decode(data_url.split(",", 1)[1])
