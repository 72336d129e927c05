from datetime import datetime

from dashboard import _prep
from ledger import (
    add_recurring_item,
    get_last_recurring_prompt,
    list_recurring_items,
    list_transactions,
    load_data,
    set_last_recurring_prompt,
    set_recurring_enabled,
)
from recurring import (
    confirm_suggestion,
    dismiss_suggestion,
    generate_recurring_transactions,
    pending_suggestion,
    should_suggest,
    suggestion_totals,
)

TODAY = datetime(2026, 10, 19, 9, 0)


def _df(db):
    return _prep(load_data(db))


def test_no_suggestion_without_items(db):
    assert should_suggest([], _df(db), None, TODAY) is False


def test_suggests_when_month_has_no_recurring_transactions(db, add_tx):
    add_recurring_item(db, "Alquiler", 180000, "EXPENSE", "Alquiler")
    add_tx(date=datetime(2026, 10, 2))
    # A recurring transaction from last month does not count
    add_tx(date=datetime(2026, 9, 1), tags=["recurrente"])
    assert pending_suggestion(db, _df(db), TODAY) is True


def test_no_suggestion_once_prompted_this_month(db):
    add_recurring_item(db, "Alquiler", 180000)
    set_last_recurring_prompt(db, "2026-10")
    assert pending_suggestion(db, _df(db), TODAY) is False

    # A prompt from a previous month does not block the new one
    set_last_recurring_prompt(db, "2026-09")
    assert pending_suggestion(db, _df(db), TODAY) is True


def test_no_suggestion_when_recurring_already_generated(db, add_tx):
    add_recurring_item(db, "Alquiler", 180000)
    add_tx(date=datetime(2026, 10, 1), tags=["recurrente"])
    assert pending_suggestion(db, _df(db), TODAY) is False


def test_disabled_items_are_not_suggested(db):
    item = add_recurring_item(db, "Alquiler", 180000)
    set_recurring_enabled(db, item.id, False)
    assert pending_suggestion(db, _df(db), TODAY) is False


def test_generated_transactions_shape(db):
    add_recurring_item(db, "Sueldo", 450000, "INCOME")
    add_recurring_item(db, "Alquiler", 180000, "EXPENSE", "Alquiler")

    txs = generate_recurring_transactions(list_recurring_items(db), TODAY)
    assert len(txs) == 2
    salary, rent = txs
    assert salary.description == "Sueldo (Mensual)"
    assert salary.category == "Ingreso"
    assert salary.type.value == "INCOME"
    assert rent.subcategory == "Fijo"
    assert rent.payment_method == "Automático"
    assert rent.tags == ["recurrente"]
    assert rent.date == TODAY
    assert rent.currency.value == "ARS"


def test_confirm_adds_transactions_and_marks_month(db):
    add_recurring_item(db, "Sueldo", 450000, "INCOME")
    add_recurring_item(db, "Alquiler", 180000, "EXPENSE", "Alquiler")

    assert confirm_suggestion(db, TODAY) == 2
    assert len(list_transactions(db)) == 2
    assert get_last_recurring_prompt(db) == "2026-10"
    assert pending_suggestion(db, _df(db), TODAY) is False


def test_dismiss_only_marks_month(db):
    add_recurring_item(db, "Alquiler", 180000)
    dismiss_suggestion(db, TODAY)
    assert list_transactions(db) == []
    assert get_last_recurring_prompt(db) == "2026-10"
    assert pending_suggestion(db, _df(db), datetime(2026, 11, 1)) is True


def test_suggestion_totals(db):
    add_recurring_item(db, "Sueldo", 450000, "INCOME")
    add_recurring_item(db, "Alquiler", 180000, "EXPENSE", "Alquiler")
    gym = add_recurring_item(db, "Gimnasio", 20000, "EXPENSE", "Salud")
    set_recurring_enabled(db, gym.id, False)

    totals = suggestion_totals(list_recurring_items(db))
    assert totals == {"income": 450000.0, "expense": 180000.0, "count": 2}
