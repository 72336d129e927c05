import os
import uuid
from datetime import datetime
from sqlalchemy import create_engine, Column, Integer, String, Float, Boolean, DateTime, JSON
from sqlalchemy.orm import sessionmaker, declarative_base
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Database Setup
# Default to a local SQLite file next to the app
DB_URL = os.getenv("DATABASE_URL", "sqlite:///pesitos.db")

engine = create_engine(DB_URL, connect_args={"check_same_thread": False} if "sqlite" in DB_URL else {})
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())

# --- Models ---

class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String, primary_key=True, default=new_id)
    amount = Column(Float, nullable=False)
    original_amount = Column(Float, nullable=True)
    currency = Column(String, default="ARS")
    original_currency = Column(String, nullable=True)
    type = Column(String, nullable=False)          # 'EXPENSE' or 'INCOME'
    category = Column(String)
    subcategory = Column(String, default="")
    date = Column(DateTime, index=True)            # naive, local time
    description = Column(String, default="")
    payment_method = Column(String, default="Efectivo")
    project_id = Column(String, default="personal")
    tags = Column(JSON, default=list)

    # Insertion order, used to keep "newest first" stable for same-date rows
    created_at = Column(DateTime, default=datetime.now)

class RecurringTransaction(Base):
    __tablename__ = "recurring_transactions"

    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    currency = Column(String, default="ARS")
    type = Column(String, default="EXPENSE")       # fixed income (salary) or fixed cost (rent)
    category = Column(String)
    is_enabled = Column(Boolean, default=True)
    position = Column(Integer, default=0)

class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)

class AppSetting(Base):
    __tablename__ = "app_settings"

    key = Column(String, primary_key=True)
    value = Column(JSON)

# --- Init DB ---
def init_db():
    Base.metadata.create_all(bind=engine)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
