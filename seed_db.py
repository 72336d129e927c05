from datetime import datetime, timedelta

from database import init_db, SessionLocal
from ledger import add_recurring_item, add_transactions, ensure_default_categories, list_transactions
from schemas import INCOME_CATEGORY, TransactionIn, TransactionType

DEMO_TRANSACTIONS = [
    # (days ago, type, amount, category, description, payment method)
    (0, TransactionType.EXPENSE, 4500, "Alimentación", "Supermercado", "Débito"),
    (1, TransactionType.EXPENSE, 2300, "Transporte", "Taxi al centro", "Efectivo"),
    (2, TransactionType.EXPENSE, 8900, "Entretenimiento", "Cine y cena", "Crédito"),
    (3, TransactionType.INCOME, 120000, INCOME_CATEGORY, "Proyecto freelance", "Transferencia"),
    (5, TransactionType.EXPENSE, 15000, "Servicios", "Internet y luz", "Débito"),
]

def seed_demo():
    init_db()
    db = SessionLocal()
    ensure_default_categories(db)

    # Check if data exists
    if list_transactions(db):
        print("Transactions already exist. Skipping seed.")
        db.close()
        return

    now = datetime.now()
    add_transactions(db, [
        TransactionIn(
            amount=amount,
            type=tx_type,
            category=category,
            subcategory="Freelance" if tx_type == TransactionType.INCOME else "",
            date=now - timedelta(days=days_ago),
            description=description,
            payment_method=method,
        )
        for days_ago, tx_type, amount, category, description, method in DEMO_TRANSACTIONS
    ])

    add_recurring_item(db, "Sueldo", 450000, TransactionType.INCOME.value)
    add_recurring_item(db, "Alquiler", 180000, TransactionType.EXPENSE.value, "Alquiler")

    print("Database initialized with demo transactions.")
    db.close()

if __name__ == "__main__":
    seed_demo()
