"""Excel-backed test data, one row per scenario."""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime
from pathlib import Path
from typing import Any

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from healwright.constants import DATA_KEY_COLUMN
from healwright.core.config import Settings
from healwright.exceptions import DataLookupError

logger = logging.getLogger(__name__)


def _cell_text(value: Any) -> str:
    """Render a cell the way it reads in the sheet."""
    if value is None:
        return ""

    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"

    if isinstance(value, float) and value.is_integer():
        return str(int(value))

    if isinstance(value, datetime):
        return value.isoformat(sep=" ")

    if isinstance(value, date):
        return value.isoformat()

    return str(value).strip()


class ExcelDataProvider:
    """Look up per-scenario test data in an ``.xlsx`` workbook.

    The first row of each sheet is the header. Rows are matched on the
    ``ScenarioName`` column, ignoring case. Sheets are read once and cached;
    the cache is shared by all workers.

    Parameters
    ----------
    workbook_path : str | Path
        Workbook to read
    key_column : str
        Header of the column holding the lookup key
    """

    def __init__(self, workbook_path: str | Path, key_column: str = DATA_KEY_COLUMN) -> None:
        self.workbook_path = Path(workbook_path)
        self.key_column = key_column
        self._lock = threading.Lock()
        self._sheets: dict[str, list[dict[str, str]]] = {}

    @classmethod
    def for_environment(cls, settings: Settings) -> ExcelDataProvider:
        """Build a provider for ``<data.dir>/<environment>/<data.file>``."""
        path = (
            Path(settings.get("data.dir"))
            / settings.environment.strip().lower()
            / settings.get("data.file")
        )
        logger.debug("Test data file path: %s", path)
        return cls(path)

    def get_sheet_data(self, sheet_name: str) -> list[dict[str, str]]:
        """Return every data row of ``sheet_name`` as header -> text dicts.

        Raises
        ------
        DataLookupError
            If the workbook cannot be opened or has no such sheet
        """
        with self._lock:
            rows = self._sheets.get(sheet_name)

            if rows is None:
                rows = self._read_sheet(sheet_name)
                self._sheets[sheet_name] = rows

        return rows

    def _read_sheet(self, sheet_name: str) -> list[dict[str, str]]:
        try:
            workbook = load_workbook(self.workbook_path, read_only=True, data_only=True)
        except (OSError, InvalidFileException) as e:
            raise DataLookupError(f"Excel Error: cannot open {self.workbook_path}: {e}") from e

        try:
            if sheet_name not in workbook.sheetnames:
                raise DataLookupError(
                    f"Excel Error: sheet '{sheet_name}' not found in {self.workbook_path}"
                )

            rows = workbook[sheet_name].iter_rows(values_only=True)
            header = next(rows, None)

            if header is None:
                return []

            columns = [_cell_text(name) for name in header]
            data = [
                {
                    column: _cell_text(row[index]) if index < len(row) else ""
                    for index, column in enumerate(columns)
                    if column
                }
                for row in rows
                if row and any(value is not None for value in row)
            ]
        finally:
            workbook.close()

        logger.debug("Read %d row(s) of test data from sheet: %s", len(data), sheet_name)
        return data

    def get_test_data(self, sheet_name: str, key: str) -> dict[str, str]:
        """Return the row whose key column matches ``key`` case-insensitively.

        Parameters
        ----------
        sheet_name : str
            Sheet to search
        key : str
            Scenario key, e.g. ``ValidLogin``

        Returns
        -------
        dict[str, str]
            Copy of the matched row

        Raises
        ------
        DataLookupError
            If no row carries ``key``
        """
        wanted = key.strip().lower()

        for row in self.get_sheet_data(sheet_name):
            if row.get(self.key_column, "").lower() == wanted:
                return dict(row)

        raise DataLookupError(f"Data Error: No row found for key '{key}' in sheet '{sheet_name}'")
