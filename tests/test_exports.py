import io
from datetime import date

import pandas as pd

from cx_core.derive import derive_batch, to_rows
from services.exports import rows_to_frame, to_csv_bytes, to_excel_bytes, to_pdf_bytes


def _frame(refs):
    raw = [
        {"id": "a", "NO": "1", "EQUIPMENT ID": "UPS-1", "AREA": "A1", "Subcont/ Vendor": "ACME"},
        {"id": "b", "NO": "2", "EQUIPMENT ID": "PDU-2", "AREA": "A2", "Subcont/ Vendor": "Volt Co"},
    ]
    return rows_to_frame(to_rows(derive_batch(raw, refs, date(2025, 10, 1))))


class TestExports:
    def test_csv(self, refs):
        text = to_csv_bytes(_frame(refs)).decode("utf-8")
        header = text.splitlines()[0]
        assert header.startswith("No,Equipment ID,Type,Area")
        assert "ROJ Late Information (12d)" in text

    def test_excel(self, refs):
        data = to_excel_bytes(_frame(refs))
        assert data[:2] == b"PK"
        back = pd.read_excel(io.BytesIO(data))
        assert list(back["Equipment ID"]) == ["UPS-1", "PDU-2"]

    def test_pdf(self, refs):
        assert to_pdf_bytes(_frame(refs)).startswith(b"%PDF")

    def test_pdf_empty(self):
        assert to_pdf_bytes(pd.DataFrame()).startswith(b"%PDF")
