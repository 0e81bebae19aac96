"""Spreadsheet decoding into a uniform column/row dataset using pandas."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
import logging
import math
from pathlib import Path

import pandas as pd

from formstamp.config import MAX_TABULAR_BYTES, TABULAR_SUFFIXES
from formstamp.model.dataset import Dataset, DatasetRow

logger = logging.getLogger(__name__)

CSV_SHEET_NAME = "CSV"


class TabularLoadError(RuntimeError):
    """Raised when a data file cannot be turned into a dataset."""


def validate_tabular_file(path: str | Path) -> Path:
    source = Path(path)
    if source.suffix.lower() not in TABULAR_SUFFIXES:
        raise TabularLoadError(
            f"Please select a spreadsheet ({', '.join(TABULAR_SUFFIXES)}): {source.name}"
        )
    try:
        size = source.stat().st_size
    except OSError as exc:
        raise TabularLoadError(f"File not found: {source}") from exc
    if size > MAX_TABULAR_BYTES:
        raise TabularLoadError(f"File size must be less than {MAX_TABULAR_BYTES // (1024 * 1024)}MB")
    return source


def list_sheet_names(path: str | Path) -> list[str]:
    source = validate_tabular_file(path)
    if source.suffix.lower() == ".csv":
        return [CSV_SHEET_NAME]
    try:
        with pd.ExcelFile(source) as workbook:
            return [str(name) for name in workbook.sheet_names]
    except Exception as exc:
        raise TabularLoadError(f"Failed to read sheet names from: {source.name}") from exc


def load_dataset(path: str | Path, sheet_name: str | None = None) -> Dataset:
    source = validate_tabular_file(path)
    if source.suffix.lower() == ".csv":
        frame = _read_csv(source)
        sheet_name = CSV_SHEET_NAME
    else:
        sheets = list_sheet_names(source)
        if sheet_name is None:
            sheet_name = sheets[0] if sheets else ""
        if sheet_name not in sheets:
            raise TabularLoadError(f'Sheet "{sheet_name}" not found in {source.name}.')
        try:
            frame = pd.read_excel(source, sheet_name=sheet_name, header=None, dtype=object)
        except Exception as exc:
            raise TabularLoadError(f"Failed to parse sheet {sheet_name!r} of {source.name}") from exc

    if frame.empty:
        raise TabularLoadError("Selected sheet is empty.")

    dataset = dataset_from_records(frame.itertuples(index=False, name=None))
    dataset.sheet_name = sheet_name
    logger.info(
        "Loaded %s [%s]: %d column(s), %d row(s)",
        source.name,
        sheet_name,
        len(dataset.columns),
        dataset.row_count,
    )
    return dataset


def dataset_from_records(records: Iterable[Sequence[object]]) -> Dataset:
    """Build a dataset from raw rows, the first being the header.

    Empty header cells are ignored and repeated names keep their first
    column. Rows whose every value is empty are dropped.
    """
    iterator = iter(records)
    try:
        header = next(iterator)
    except StopIteration as exc:
        raise TabularLoadError("Selected sheet is empty.") from exc

    positions: dict[str, int] = {}
    for index, cell in enumerate(header):
        name = _cell_text(cell).strip()
        if name and name not in positions:
            positions[name] = index
    if not positions:
        raise TabularLoadError("Header row has no column names.")

    rows: list[DatasetRow] = []
    for record in iterator:
        row = {
            name: _cell_text(record[index]) if index < len(record) else ""
            for name, index in positions.items()
        }
        if any(value != "" for value in row.values()):
            rows.append(row)

    return Dataset(columns=list(positions), rows=rows)


def _read_csv(source: Path) -> pd.DataFrame:
    try:
        return pd.read_csv(source, header=None, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError as exc:
        raise TabularLoadError("Selected sheet is empty.") from exc
    except Exception as exc:
        raise TabularLoadError(f"Failed to parse CSV file: {source.name}") from exc


def _cell_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value)
