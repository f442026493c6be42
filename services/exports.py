# services/exports.py
from __future__ import annotations
import io
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd
from fpdf import FPDF

# Columns kept in the PDF; the full table is too wide for a page
PDF_COLUMNS = ["No", "Equipment ID", "Area", "Subcont/ Vendor", "L1 Status", "L2 Status", "L3 Status"]

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def rows_to_frame(rows: Sequence[Dict[str, Any]]) -> pd.DataFrame:
    return pd.DataFrame(list(rows))


def to_csv_bytes(df: pd.DataFrame) -> bytes:
    return df.to_csv(index=False).encode("utf-8")


def to_excel_bytes(df: pd.DataFrame, sheet_name: str = "Equipment") -> bytes:
    towrite = io.BytesIO()
    with pd.ExcelWriter(towrite, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=sheet_name[:31])
    towrite.seek(0)
    return towrite.getvalue()


def _latin1(text: Any) -> str:
    # core PDF fonts are latin-1 only
    return str(text if text is not None else "").encode("latin-1", "replace").decode("latin-1")


def to_pdf_bytes(df: pd.DataFrame, title: str = "Commissioning Tracker",
                 columns: Optional[List[str]] = None) -> bytes:
    cols = [c for c in (columns or PDF_COLUMNS) if c in df.columns] or list(df.columns)
    pdf = FPDF(orientation="L")
    pdf.add_page()
    pdf.set_font("Helvetica", style="B", size=14)
    pdf.cell(0, 10, _latin1(title), new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", size=8)
    if df.empty:
        pdf.cell(0, 8, "No equipment matches the current filters.", new_x="LMARGIN", new_y="NEXT")
        return bytes(pdf.output())

    width = (pdf.w - pdf.l_margin - pdf.r_margin) / len(cols)
    pdf.set_font("Helvetica", style="B", size=8)
    for c in cols:
        pdf.cell(width, 7, _latin1(c)[:40], border=1)
    pdf.ln()
    pdf.set_font("Helvetica", size=8)
    for _, row in df.iterrows():
        for c in cols:
            pdf.cell(width, 6, _latin1(row[c])[:40], border=1)
        pdf.ln()
    return bytes(pdf.output())
