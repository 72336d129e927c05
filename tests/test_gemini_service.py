import json
from datetime import datetime

import pandas as pd
import pytest

import gemini_service
from dashboard import _prep
from gemini_service import (
    AIServiceError,
    gemini_enabled,
    generate_financial_insights,
    generate_financial_profile,
    parse_transaction_input,
    transcribe_audio,
)


def _frame(n):
    return _prep(pd.DataFrame([
        {
            "ID": str(i),
            "Date": datetime(2026, 10, 1 + i),
            "Amount": 1000 + i,
            "Currency": "ARS",
            "Type": "EXPENSE",
            "Category": "Alimentación",
            "Subcategory": "",
            "Description": f"Compra {i}",
            "PaymentMethod": "Efectivo",
            "Tags": [],
        }
        for i in range(n)
    ]))


def test_gemini_disabled_without_key(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    ok, reason = gemini_enabled()
    assert ok is False
    assert "GEMINI_API_KEY" in reason

    with pytest.raises(AIServiceError):
        parse_transaction_input("gasté 100 en pan")


def test_gemini_enabled_with_key(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    assert gemini_enabled() == (True, "OK")


def test_client_construction_failure(monkeypatch):
    def broken_client(**kwargs):
        raise ValueError("bad credentials")

    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    monkeypatch.setattr(gemini_service.genai, "Client", broken_client)

    with pytest.raises(AIServiceError):
        parse_transaction_input("gasté 100 en pan")
    assert generate_financial_insights(_frame(3)) == []
    assert generate_financial_profile(_frame(6)) is None


def test_parse_transaction_input(fake_gemini):
    client = fake_gemini(json.dumps({
        "amount": 4500,
        "currency": "ARS",
        "type": "EXPENSE",
        "category": "Alimentación",
        "date": "2026-10-18T10:00:00Z",
        "description": "Supermercado",
        "payment_method": "Débito",
        "tags": ["súper"],
    }))

    result = parse_transaction_input("ayer gasté 4500 en el súper", now=datetime(2026, 10, 19))

    assert result.amount == 4500
    assert result.category == "Alimentación"
    assert result.subcategory is None
    call = client.models.calls[0]
    assert call["model"] == gemini_service.GEMINI_MODEL
    assert "ayer gasté 4500 en el súper" in call["contents"]
    assert "2026-10-19" in call["config"].system_instruction
    assert call["config"].response_mime_type == "application/json"


def test_parse_transaction_falls_back_to_next_model(fake_gemini):
    client = fake_gemini(
        RuntimeError("quota exceeded"),
        json.dumps({"amount": 10, "type": "INCOME", "category": "Ingreso", "date": "2026-10-19", "description": "Venta"}),
    )
    result = parse_transaction_input("vendí algo por 10")
    assert result.type == "INCOME"
    assert len(client.models.calls) == 2
    assert client.models.calls[0]["model"] != client.models.calls[1]["model"]


def test_parse_transaction_invalid_json_raises(fake_gemini):
    fake_gemini("not json at all")
    with pytest.raises(AIServiceError):
        parse_transaction_input("???")


def test_parse_transaction_all_models_fail(fake_gemini):
    fake_gemini("", "")
    with pytest.raises(AIServiceError):
        parse_transaction_input("???")


def test_transcribe_audio_returns_text(fake_gemini):
    client = fake_gemini("gasté mil pesos en el colectivo")
    assert transcribe_audio(b"RIFF....", "audio/wav") == "gasté mil pesos en el colectivo"
    assert len(client.models.calls[0]["contents"]) == 2


def test_insights_empty_input_skips_model(fake_gemini):
    client = fake_gemini()
    assert generate_financial_insights(_frame(0)) == []
    assert client.models.calls == []


def test_insights_parsed(fake_gemini):
    client = fake_gemini(json.dumps([
        {"title": "Ojo con el súper", "description": "Gastaste más que el mes pasado", "type": "warning"},
        {"title": "Buen ahorro", "description": "Sigue así", "type": "opportunity"},
    ]))
    insights = generate_financial_insights(_frame(3))
    assert [i.type for i in insights] == ["warning", "opportunity"]
    assert "Compra 2" in client.models.calls[0]["contents"]


def test_insights_errors_return_empty_list(fake_gemini):
    fake_gemini(json.dumps([{"title": "x", "description": "y", "type": "panic"}]))
    assert generate_financial_insights(_frame(3)) == []


def test_profile_needs_five_transactions(fake_gemini):
    client = fake_gemini()
    assert generate_financial_profile(_frame(4)) is None
    assert client.models.calls == []


def test_profile_parsed(fake_gemini):
    fake_gemini(json.dumps({
        "persona_title": "Inversor Hormiga",
        "description": "Pequeños gastos constantes",
        "strengths": ["Registra todo"],
        "weaknesses": ["Delivery"],
    }))
    profile = generate_financial_profile(_frame(5))
    assert profile.persona_title == "Inversor Hormiga"
    assert profile.weaknesses == ["Delivery"]


def test_profile_error_returns_none(fake_gemini):
    fake_gemini("{broken", "{broken")
    assert generate_financial_profile(_frame(6)) is None
