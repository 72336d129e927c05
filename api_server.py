"""Lightweight JSON tools API exposing the Pesitos ledger over FastAPI."""

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from dashboard import _prep
from database import SessionLocal, get_db, init_db
from gemini_service import AIServiceError, parse_transaction_input
from insights import budget_breakdown, filter_month, month_key
from ledger import (
    LedgerError,
    delete_transaction,
    ensure_default_categories,
    list_categories,
    list_recurring_items,
    list_transactions,
    load_data,
    normalize_parsing_result,
    require_fields,
    save_transaction,
)
from recurring import confirm_suggestion, dismiss_suggestion, pending_suggestion, suggestion_totals
from schemas import RecurringTransactionOut, TransactionIn, TransactionOut

logging.basicConfig(
    level=os.getenv("PESITOS_LOG_LEVEL", "INFO"),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger("pesitos.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    db = SessionLocal()
    try:
        ensure_default_categories(db)
    finally:
        db.close()
    yield


app = FastAPI(title="Pesitos Tools API", version="0.1.0", lifespan=lifespan)


class ParseRequest(BaseModel):
    text: str = Field(..., min_length=1, description="Free text such as 'ayer gasté 4500 en el súper'")


class ParseResponse(BaseModel):
    form: dict


@app.post("/tools/parse_transaction", response_model=ParseResponse)
async def parse_transaction(req: ParseRequest, db: Session = Depends(get_db)):
    try:
        result = parse_transaction_input(req.text)
    except AIServiceError as e:
        logger.error("parse_transaction failed: %s", e)
        raise HTTPException(status_code=502, detail=str(e))
    form = normalize_parsing_result(result, list_categories(db))
    form["date"] = form["date"].isoformat()
    return ParseResponse(form=form)


@app.get("/transactions", response_model=List[TransactionOut])
async def get_transactions(db: Session = Depends(get_db)):
    return [TransactionOut.model_validate(t) for t in list_transactions(db)]


@app.post("/transactions", response_model=TransactionOut)
async def post_transaction(tx: TransactionIn, db: Session = Depends(get_db)):
    try:
        require_fields(tx.model_dump())
        row = save_transaction(db, tx)
    except LedgerError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return TransactionOut.model_validate(row)


@app.delete("/transactions/{transaction_id}")
async def remove_transaction(transaction_id: str, db: Session = Depends(get_db)):
    if not delete_transaction(db, transaction_id):
        raise HTTPException(status_code=404, detail="Transaction not found")
    return {"ok": True}


class SummaryResponse(BaseModel):
    month: str
    income: float
    expense: float
    balance: float
    fixed_income_config: float
    fixed_expense_config: float
    real_fixed_expense: float
    real_variable_expense: float


@app.get("/summary/{month}", response_model=SummaryResponse)
async def month_summary(month: str, db: Session = Depends(get_db)):
    try:
        datetime.strptime(month, "%Y-%m")
    except ValueError:
        raise HTTPException(status_code=422, detail="month must be YYYY-MM")
    df = _prep(load_data(db))
    breakdown = budget_breakdown(filter_month(df, month), list_recurring_items(db))
    return SummaryResponse(month=month, **breakdown)


class SuggestionResponse(BaseModel):
    month: str
    pending: bool
    items: List[RecurringTransactionOut]
    income: float
    expense: float


@app.get("/recurring/suggestion", response_model=SuggestionResponse)
async def recurring_suggestion(db: Session = Depends(get_db)):
    df = _prep(load_data(db))
    items = [i for i in list_recurring_items(db) if i.is_enabled]
    totals = suggestion_totals(items)
    return SuggestionResponse(
        month=month_key(datetime.now()),
        pending=pending_suggestion(db, df),
        items=[RecurringTransactionOut.model_validate(i) for i in items],
        income=totals["income"],
        expense=totals["expense"],
    )


@app.post("/recurring/confirm")
async def recurring_confirm(db: Session = Depends(get_db)):
    return {"added": confirm_suggestion(db)}


@app.post("/recurring/dismiss")
async def recurring_dismiss(db: Session = Depends(get_db)):
    dismiss_suggestion(db)
    return {"ok": True}


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api_server:app", host="0.0.0.0", port=8001, reload=True)
