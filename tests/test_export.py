from datetime import date, datetime

import pandas as pd
import pytest

import storage
from dashboard import _prep
from export import EmptyExportError, build_report, report_csv, report_filename
from ledger import load_data


def test_report_filters_inclusive_range_and_formats(db, add_tx):
    add_tx(date=datetime(2026, 10, 1, 0, 0), description="Inicio")
    add_tx(date=datetime(2026, 10, 10, 23, 59), description='Cena "especial", con amigos')
    add_tx(date=datetime(2026, 10, 11, 0, 1), description="Fuera de rango")
    add_tx(date=datetime(2026, 9, 30, 23, 59), description="Mes anterior")

    report = build_report(_prep(load_data(db)), date(2026, 10, 1), date(2026, 10, 10))

    assert list(report.columns) == [
        "Fecha", "Tipo", "Monto", "Moneda", "Categoria", "Subcategoria", "Descripcion", "MetodoPago",
    ]
    assert sorted(report["Descripcion"]) == ['Cena "especial", con amigos', "Inicio"]
    assert set(report["Fecha"]) == {"01/10/2026", "10/10/2026"}

    csv_text = report_csv(report).decode("utf-8")
    assert csv_text.splitlines()[0] == "Fecha,Tipo,Monto,Moneda,Categoria,Subcategoria,Descripcion,MetodoPago"
    assert '"Cena ""especial"", con amigos"' in csv_text


def test_empty_range_raises(db, add_tx):
    with pytest.raises(EmptyExportError):
        build_report(_prep(load_data(db)), date(2026, 10, 1), date(2026, 10, 31))

    add_tx(date=datetime(2026, 10, 15))
    with pytest.raises(EmptyExportError):
        build_report(_prep(load_data(db)), date(2026, 11, 1), date(2026, 11, 30))


def test_report_filename():
    assert report_filename(date(2026, 10, 1), date(2026, 10, 31)) == "Pesitos_Reporte_2026-10-01_2026-10-31.csv"


def test_report_archive_local_roundtrip(tmp_path, monkeypatch):
    monkeypatch.setattr(storage, "S3_BUCKET", None)
    monkeypatch.setattr(storage, "LOCAL_ROOT", tmp_path)

    assert storage.list_reports() == []
    frame = pd.DataFrame({"Fecha": ["01/10/2026"], "Monto": [1500.0]})
    assert storage.archive_report("b.csv", frame) is True
    assert storage.archive_report("a.csv", b"Fecha,Monto\n02/10/2026,10\n") is True

    assert storage.list_reports() == ["a.csv", "b.csv"]
    assert (tmp_path / "reports" / "a.csv").exists()
    assert storage.load_report("b.csv")["Monto"].tolist() == [1500.0]
    assert storage.load_report("missing.csv") is None


def test_report_archive_s3(monkeypatch):
    class FakeS3:
        def __init__(self):
            self.objects = {}

        def put_object(self, Bucket, Key, Body, ContentType):
            self.objects[Key] = Body

        def list_objects_v2(self, Bucket, Prefix):
            return {"Contents": [{"Key": k} for k in self.objects if k.startswith(Prefix)]}

    s3 = FakeS3()
    monkeypatch.setattr(storage, "S3_BUCKET", "pesitos-reports")
    monkeypatch.setattr(storage, "get_s3_client", lambda: s3)

    assert storage.archive_report("r.csv", b"x") is True
    assert s3.objects == {"reports/r.csv": b"x"}
    assert storage.list_reports() == ["r.csv"]


def test_report_archive_s3_failure_returns_false(monkeypatch):
    class BrokenS3:
        def put_object(self, **kwargs):
            raise RuntimeError("access denied")

    monkeypatch.setattr(storage, "S3_BUCKET", "pesitos-reports")
    monkeypatch.setattr(storage, "get_s3_client", lambda: BrokenS3())
    assert storage.archive_report("reporte.csv", b"x") is False
