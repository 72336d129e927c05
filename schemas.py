"""Domain types shared by the ledger, the AI service and the tools API."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class TransactionType(str, Enum):
    EXPENSE = "EXPENSE"
    INCOME = "INCOME"


class Currency(str, Enum):
    ARS = "ARS"
    USD = "USD"
    EUR = "EUR"
    MXN = "MXN"
    COP = "COP"


INCOME_CATEGORY = "Ingreso"
RECURRING_TAG = "recurrente"
DEFAULT_PROJECT = "personal"

DEFAULT_CATEGORIES = [
    "Alimentación", "Transporte", "Alquiler", "Servicios", "Entretenimiento",
    "Salud", "Educación", "Otros", INCOME_CATEGORY,
]

PAYMENT_METHODS = ["Efectivo", "Crédito", "Débito", "Transferencia", "Otro"]

CATEGORY_EMOJIS = {
    "Alimentación": "🍔",
    "Transporte": "🚕",
    "Alquiler": "🏠",
    "Servicios": "💡",
    "Entretenimiento": "🎬",
    "Salud": "🏥",
    "Educación": "📚",
    "Otros": "📦",
    "Supermercado": "🛒",
    "Ropa": "👕",
    "Viajes": "✈️",
    "Regalos": "🎁",
    "Ingreso": "💰",
    "Sueldo": "💵",
    "Inversiones": "📈",
    "Freelance": "💻",
}


def get_category_emoji(category: str) -> str:
    return CATEGORY_EMOJIS.get(category, "💸")


class TransactionIn(BaseModel):
    id: Optional[str] = None
    amount: float
    original_amount: Optional[float] = None
    currency: Currency = Currency.ARS
    original_currency: Optional[Currency] = None
    type: TransactionType
    category: str
    subcategory: str = ""
    date: datetime
    description: str
    payment_method: str = "Efectivo"
    project_id: str = DEFAULT_PROJECT
    tags: List[str] = Field(default_factory=list)


class TransactionOut(TransactionIn):
    id: str

    model_config = {"from_attributes": True}


class RecurringTransactionOut(BaseModel):
    id: str
    name: str
    amount: float
    currency: Currency
    type: TransactionType
    category: str
    is_enabled: bool

    model_config = {"from_attributes": True}


class ParsingResult(BaseModel):
    """Structured transaction extracted by the model from free text."""

    amount: float
    currency: Optional[str] = None
    type: str
    category: str
    subcategory: Optional[str] = None
    date: Optional[str] = None
    description: str
    payment_method: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class FinancialInsight(BaseModel):
    title: str
    description: str
    type: Literal["warning", "opportunity", "neutral"] = "neutral"


class UserFinancialProfile(BaseModel):
    persona_title: str
    description: str
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)


class UserSettings(BaseModel):
    name: str = "Usuario"
    avatar: Optional[str] = None  # data URL (base64)
