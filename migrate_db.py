"""
migrate_db.py
-------------
Create any missing tables and, optionally, import a JSON dump of the
browser storage used by the first version of Pesitos (the
``pesitos_*`` localStorage keys).

Usage:

    python migrate_db.py [--legacy-json pesitos_backup.json]
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from sqlalchemy.orm import Session

from database import Base, Category, RecurringTransaction, SessionLocal, engine
from ledger import (
    ensure_default_categories,
    save_transaction,
    save_user_profile,
    save_user_settings,
    set_last_recurring_prompt,
)
from schemas import (
    INCOME_CATEGORY,
    TransactionIn,
    TransactionType,
    UserFinancialProfile,
    UserSettings,
)

LEGACY_KEYS = {
    "transactions": "pesitos_transactions",
    "recurring": "pesitos_fixed_costs",
    "categories": "pesitos_categories",
    "profile": "pesitos_user_profile",
    "settings": "pesitos_user_settings",
    "last_prompt": "pesitos_last_recurring_prompt",
}


def _value(payload: dict, name: str):
    """localStorage keeps JSON strings; accept them decoded or not."""
    raw = payload.get(LEGACY_KEYS[name])
    if isinstance(raw, str) and name != "last_prompt":
        return json.loads(raw)
    return raw


def _legacy_transaction(item: dict) -> TransactionIn:
    return TransactionIn(
        id=item.get("id"),
        amount=item["amount"],
        original_amount=item.get("originalAmount"),
        currency=item.get("currency") or "ARS",
        original_currency=item.get("originalCurrency"),
        type=item.get("type") or TransactionType.EXPENSE.value,
        category=item.get("category") or "Otros",
        subcategory=item.get("subcategory") or "",
        date=item["date"],
        description=item.get("description") or "",
        payment_method=item.get("paymentMethod") or "Efectivo",
        project_id=item.get("projectId") or "personal",
        tags=item.get("tags") or [],
    )


def import_legacy_storage(db: Session, payload: dict) -> dict:
    counts = {"transactions": 0, "recurring": 0, "categories": 0}

    for item in _value(payload, "transactions") or []:
        save_transaction(db, _legacy_transaction(item))
        counts["transactions"] += 1

    recurring = _value(payload, "recurring") or []
    for position, item in enumerate(recurring):
        # Items saved before income support have no type: they were all fixed costs
        db.merge(RecurringTransaction(
            id=item["id"],
            name=item["name"],
            amount=float(item["amount"]),
            currency=item.get("currency") or "ARS",
            type=item.get("type") or TransactionType.EXPENSE.value,
            category=item.get("category"),
            is_enabled=item.get("isEnabled", True),
            position=position,
        ))
        counts["recurring"] += 1
    db.commit()

    categories = _value(payload, "categories")
    if categories:
        db.query(Category).delete()
        names = list(dict.fromkeys(categories))
        if INCOME_CATEGORY not in names:
            names.append(INCOME_CATEGORY)
        for name in names:
            db.add(Category(name=name))
        db.commit()
        counts["categories"] = len(names)
    else:
        ensure_default_categories(db)

    profile = _value(payload, "profile")
    if profile:
        save_user_profile(db, UserFinancialProfile(
            persona_title=profile.get("personaTitle", ""),
            description=profile.get("description", ""),
            strengths=profile.get("strengths") or [],
            weaknesses=profile.get("weaknesses") or [],
        ))

    settings = _value(payload, "settings")
    if settings:
        save_user_settings(db, UserSettings(**settings))

    last_prompt = _value(payload, "last_prompt")
    if last_prompt:
        set_last_recurring_prompt(db, last_prompt)

    return counts


def migrate_db(legacy_json: Path | None = None):
    print("Migrating database...")
    # This will create any missing tables
    Base.metadata.create_all(bind=engine)

    if legacy_json:
        payload = json.loads(legacy_json.read_text(encoding="utf-8"))
        db = SessionLocal()
        try:
            counts = import_legacy_storage(db, payload)
        finally:
            db.close()
        print(
            f"Imported {counts['transactions']} transactions, "
            f"{counts['recurring']} recurring items and {counts['categories']} categories."
        )
    print("Migration complete!")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--legacy-json", type=Path, help="JSON dump of the pesitos_* localStorage keys")
    args = parser.parse_args()
    migrate_db(args.legacy_json)
