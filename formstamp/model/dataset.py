"""Tabular dataset model consumed by batch synthesis."""

from __future__ import annotations

from dataclasses import dataclass, field

DatasetRow = dict[str, str]

# Some spreadsheet exports spell a missing cell out literally.
MISSING_VALUE_TOKEN = "undefined"


@dataclass(slots=True)
class Dataset:
    columns: list[str] = field(default_factory=list)
    rows: list[DatasetRow] = field(default_factory=list)
    sheet_name: str = ""

    @property
    def row_count(self) -> int:
        return len(self.rows)


def resolve_value(row: DatasetRow, column_name: str) -> str:
    """Return the row's value for a column, or "" when it should be skipped."""
    value = row.get(column_name)
    if value is None:
        return ""
    text = str(value)
    if text == MISSING_VALUE_TOKEN:
        return ""
    return text
