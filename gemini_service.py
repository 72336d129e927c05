# gemini_service.py
from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import List, Optional, Tuple

import pandas as pd
from dotenv import load_dotenv
from google import genai
from google.genai import types
from pydantic import TypeAdapter, ValidationError

from insights import insights_history, profile_history
from schemas import FinancialInsight, ParsingResult, UserFinancialProfile

load_dotenv()

logger = logging.getLogger(__name__)

GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
_FALLBACK_MODELS = ["gemini-2.5-flash", "gemini-2.0-flash"]

MIN_PROFILE_TRANSACTIONS = 5


class AIServiceError(RuntimeError):
    """The model is unavailable or returned something unusable."""


def _read_key() -> str:
    return (os.getenv("GEMINI_API_KEY") or "").strip()


def gemini_enabled() -> Tuple[bool, str]:
    """Quick check to show a clear reason when disabled."""
    if not _read_key():
        return False, "GEMINI_API_KEY not set"
    return True, "OK"


def _mk_client() -> "genai.Client":
    ok, reason = gemini_enabled()
    if not ok:
        raise AIServiceError(f"Gemini disabled: {reason}")
    try:
        return genai.Client(api_key=_read_key())
    except Exception as e:
        raise AIServiceError(f"Could not create the Gemini client: {e}") from e


def _model_order() -> List[str]:
    return [GEMINI_MODEL] + [m for m in _FALLBACK_MODELS if m != GEMINI_MODEL]


def _generate(contents, config: types.GenerateContentConfig) -> str:
    """Call the models in order and return the first non-empty text."""
    client = _mk_client()

    last_err: Optional[Exception] = None
    for model in _model_order():
        try:
            resp = client.models.generate_content(model=model, contents=contents, config=config)
            text = (getattr(resp, "text", None) or "").strip()
            if not text:
                raise AIServiceError(f"Model '{model}' returned empty text")
            return text
        except Exception as e:
            logger.warning("Model %s failed: %s", model, e)
            last_err = e

    raise AIServiceError(f"No hubo respuesta de la IA: {last_err}")


# ===== Transaction parsing =====

def _parser_instruction(now: datetime) -> str:
    return f"""
Eres un experto asistente financiero para una aplicación en Argentina llamada "Pesitos". Tu tarea es extraer detalles de transacciones a partir de texto natural.
Fecha Actual: {now.isoformat()}
Moneda Predeterminada: ARS (Pesos Argentinos).
Interpreta fechas relativas (ej: "ayer", "el viernes pasado", "hace 3 días") basándote en la Fecha Actual.
Categoriza inteligentemente basándote en la descripción.

REGLA IMPORTANTE DE CATEGORÍAS:
1. Si la transacción es un INGRESO (cobro sueldo, venta, dinero recibido), la categoría principal DEBE SER SIEMPRE "Ingreso".
2. Si puedes detectar un tipo específico de ingreso (ej. "Sueldo", "Venta", "Freelance"), ponlo en el campo 'subcategory'.
3. Para GASTOS, usa categorías estándar como "Alimentación", "Transporte", "Servicios", etc.
"""


_STRING = types.Schema(type=types.Type.STRING)

PARSING_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "amount": types.Schema(type=types.Type.NUMBER),
        "currency": _STRING,
        "type": types.Schema(type=types.Type.STRING, enum=["EXPENSE", "INCOME"]),
        "category": _STRING,
        "subcategory": _STRING,
        "date": types.Schema(type=types.Type.STRING, description="ISO 8601 Date string"),
        "description": _STRING,
        "payment_method": _STRING,
        "tags": types.Schema(type=types.Type.ARRAY, items=_STRING),
    },
    required=["amount", "type", "category", "date", "description"],
)

INSIGHTS_SCHEMA = types.Schema(
    type=types.Type.ARRAY,
    items=types.Schema(
        type=types.Type.OBJECT,
        properties={
            "title": _STRING,
            "description": _STRING,
            "type": types.Schema(type=types.Type.STRING, enum=["warning", "opportunity", "neutral"]),
        },
    ),
)

PROFILE_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "persona_title": _STRING,
        "description": _STRING,
        "strengths": types.Schema(type=types.Type.ARRAY, items=_STRING),
        "weaknesses": types.Schema(type=types.Type.ARRAY, items=_STRING),
    },
)


def parse_transaction_input(text: str, now: Optional[datetime] = None) -> ParsingResult:
    """
    Extract a transaction from natural language.  Raises AIServiceError when
    the model is off or its answer cannot be parsed.
    """
    now = now or datetime.now()
    config = types.GenerateContentConfig(
        system_instruction=_parser_instruction(now),
        response_mime_type="application/json",
        response_schema=PARSING_SCHEMA,
    )
    raw = _generate(f'Extrae los detalles de la transacción de este texto: "{text}"', config)
    try:
        return ParsingResult.model_validate_json(raw)
    except ValidationError as e:
        logger.error("Error analizando la transacción: %s", e)
        raise AIServiceError("La IA devolvió una respuesta inválida") from e


def transcribe_audio(data: bytes, mime_type: str = "audio/wav") -> str:
    """Speech-to-text for voice entries (Spanish, Argentina)."""
    config = types.GenerateContentConfig(
        system_instruction="Transcribe el audio en español (Argentina). Devuelve solo el texto dicho, sin comentarios.",
    )
    contents = [types.Part.from_bytes(data=data, mime_type=mime_type), "Transcribe este audio."]
    return _generate(contents, config)


# ===== Insights & profile =====

def generate_financial_insights(df: pd.DataFrame) -> List[FinancialInsight]:
    if df.empty:
        return []

    recent = "\n".join(insights_history(df, limit=50))
    config = types.GenerateContentConfig(
        response_mime_type="application/json",
        response_schema=INSIGHTS_SCHEMA,
    )
    prompt = (
        "Analiza estas transacciones financieras y proporciona 3 consejos breves y accionables en español (Argentina). "
        f"Enfócate en hábitos de gasto, anomalías o oportunidades de ahorro. Datos: \n{recent}"
    )
    try:
        raw = _generate(prompt, config)
        return TypeAdapter(List[FinancialInsight]).validate_json(raw)
    except (AIServiceError, ValidationError) as e:
        logger.error("Error generando insights: %s", e)
        return []


def generate_financial_profile(df: pd.DataFrame) -> Optional[UserFinancialProfile]:
    if len(df) < MIN_PROFILE_TRANSACTIONS:
        return None

    history = "\n".join(profile_history(df, limit=100))
    config = types.GenerateContentConfig(
        response_mime_type="application/json",
        response_schema=PROFILE_SCHEMA,
    )
    prompt = f"""Basado en este historial de transacciones, genera un perfil financiero divertido y útil para el usuario.
Define un "Arquetipo" (ej. "El Rey del Delivery", "Inversor Hormiga", "Ahorrador Serial"), una descripción, puntos fuertes y puntos débiles.
Historial:
{history}"""
    try:
        raw = _generate(prompt, config)
        return UserFinancialProfile.model_validate_json(raw)
    except (AIServiceError, ValidationError) as e:
        logger.error("Error generando perfil: %s", e)
        return None
