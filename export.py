"""
export.py - CSV report of the transactions in a date range.
"""

from datetime import date

import pandas as pd

from ledger import LedgerError

REPORT_COLUMNS = {
    "Date": "Fecha",
    "Type": "Tipo",
    "Amount": "Monto",
    "Currency": "Moneda",
    "Category": "Categoria",
    "Subcategory": "Subcategoria",
    "Description": "Descripcion",
    "PaymentMethod": "MetodoPago",
}


class EmptyExportError(LedgerError):
    pass


def build_report(df: pd.DataFrame, start: date, end: date) -> pd.DataFrame:
    """Rows dated within [start, end], end day included, in report layout."""
    if df.empty:
        raise EmptyExportError("No hay transacciones registradas en ese rango de fechas.")

    days = df["Date"].dt.date
    filtered = df[(days >= start) & (days <= end)]
    if filtered.empty:
        raise EmptyExportError("No hay transacciones registradas en ese rango de fechas.")

    report = filtered[list(REPORT_COLUMNS)].rename(columns=REPORT_COLUMNS)
    report["Fecha"] = filtered["Date"].dt.strftime("%d/%m/%Y")
    return report.reset_index(drop=True)


def report_filename(start: date, end: date) -> str:
    return f"Pesitos_Reporte_{start.isoformat()}_{end.isoformat()}.csv"


def report_csv(report: pd.DataFrame) -> bytes:
    return report.to_csv(index=False).encode("utf-8")
