"""Editable result table: one row per successfully extracted page."""

from typing import Any

from pydantic import BaseModel

from settlescan.models import RECORD_FIELDS, ExtractedRecord
from settlescan.validation import to_date, to_number


class TableRow(BaseModel):
    id: int
    record: ExtractedRecord


def format_number(value: float) -> int | float:
    """Drop the fractional part of whole numbers so exports read 1200, not 1200.0."""
    return int(value) if value.is_integer() else value


def record_to_row(record: ExtractedRecord) -> list[Any]:
    """Record values in ``RECORD_FIELDS`` order."""
    wire = record.to_wire()
    return [wire["date"]] + [format_number(float(wire[f])) for f in RECORD_FIELDS[1:]]


def record_to_sheet_row(record: ExtractedRecord) -> list[Any]:
    """Spreadsheet layout of a record.

    The row contains 10 columns in this order:
    blank, date, quantity, amountUSD, commissionUSD, totalUSD, totalKRW,
    blank, balanceKRW, blank. The blanks line up with columns of the
    settlement ledger workbook that are filled in by hand.
    """
    date, quantity, amount, commission, total_usd, total_krw, balance = record_to_row(record)
    return ["", date, quantity, amount, commission, total_usd, total_krw, "", balance, ""]


class ResultTable:
    """Rows of extracted records with stable, increasing ids."""

    def __init__(self) -> None:
        self._rows: list[TableRow] = []
        self._next_id = 0

    def __len__(self) -> int:
        return len(self._rows)

    @property
    def rows(self) -> list[TableRow]:
        return list(self._rows)

    @property
    def records(self) -> list[ExtractedRecord]:
        return [row.record for row in self._rows]

    def add_row(self, record: ExtractedRecord | None = None) -> TableRow:
        row = TableRow(id=self._next_id, record=record or ExtractedRecord())
        self._next_id += 1
        self._rows.append(row)
        return row

    def delete_row(self, row_id: int) -> bool:
        before = len(self._rows)
        self._rows = [row for row in self._rows if row.id != row_id]
        return len(self._rows) != before

    def update_cell(self, row_id: int, field: str, value: Any) -> TableRow:
        """Replace one field of a row, coercing the value like provider output.

        Raises:
            KeyError: If no row has ``row_id`` or ``field`` is not a record field
        """
        if field not in RECORD_FIELDS:
            raise KeyError(f"Unknown field: {field}")
        for index, row in enumerate(self._rows):
            if row.id == row_id:
                wire = row.record.to_wire()
                wire[field] = to_date(value) if field == "date" else to_number(value)
                updated = TableRow(id=row_id, record=ExtractedRecord.model_validate(wire))
                self._rows[index] = updated
                return updated
        raise KeyError(f"No row with id {row_id}")

    def clear(self) -> None:
        self._rows.clear()

    def to_tsv(self) -> str:
        """Tab-separated rows ready to paste into the settlement workbook."""
        return "\n".join(
            "\t".join(str(cell) for cell in record_to_sheet_row(row.record))
            for row in self._rows
        )
