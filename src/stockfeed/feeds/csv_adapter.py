"""CSV bar adapter: parses CSV rows from files or download endpoints."""

from __future__ import annotations

import csv
import io
import logging
import math
from datetime import date, datetime
from pathlib import Path
from typing import Any

from stockfeed.core.models import Bar

logger = logging.getLogger(__name__)

# Common column name mappings for auto-detection
_DATE_ALIASES = {"date", "Date", "DATE", "timestamp", "Timestamp"}
_OPEN_ALIASES = {"open", "Open", "OPEN"}
_HIGH_ALIASES = {"high", "High", "HIGH"}
_LOW_ALIASES = {"low", "Low", "LOW"}
_CLOSE_ALIASES = {"close", "Close", "CLOSE"}
_VOLUME_ALIASES = {"volume", "Volume", "VOLUME", "vol", "Vol"}
_SOURCE_ALIASES = {"source", "Source", "comment", "Comment"}

_MISSING = {"", "N/D", "null", "NaN", "nan", "-"}


def _find_column(headers: list[str], aliases: set[str]) -> str | None:
    """Find the first header that matches any alias."""
    for h in headers:
        if h in aliases:
            return h
    return None


def _number(value: str | None) -> float | None:
    """Parse a numeric cell; blanks, placeholders and non-finite values give None."""
    if value is None or value.strip() in _MISSING:
        return None
    try:
        number = float(value.replace(",", ""))
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def rows_from_text(text: str) -> list[dict[str, str]]:
    """Split CSV text into dict rows, detecting ``;`` or ``,`` delimiters."""
    text = text.strip()
    if not text:
        return []
    first_line = text.splitlines()[0]
    delimiter = ";" if first_line.count(";") > first_line.count(",") else ","
    return list(csv.DictReader(io.StringIO(text), delimiter=delimiter))


class CSVBarAdapter:
    """Transforms CSV rows into Bar records.

    Supports flexible column mapping. If column names aren't specified,
    auto-detects common naming conventions. Rows with an unparseable date
    or no usable close are dropped and counted.

    Parameters
    ----------
    source : str
        Provenance tag for bars without a source column.
    date_col : str | None
        Name of the date column. Auto-detected if None.
    close_col : str | None
        Name of the close column. Auto-detected if None.
    date_format : str
        strptime fallback when the date is not ISO-8601.
    """

    def __init__(
        self,
        source: str = "csv",
        date_col: str | None = None,
        close_col: str | None = None,
        date_format: str = "%d/%m/%Y",
    ) -> None:
        self.source = source
        self._date_col = date_col
        self._close_col = close_col
        self._date_format = date_format

    def _resolve_columns(self, headers: list[str]) -> dict[str, str | None]:
        """Resolve column names from headers, using aliases for auto-detection."""
        return {
            "date": self._date_col or _find_column(headers, _DATE_ALIASES),
            "open": _find_column(headers, _OPEN_ALIASES),
            "high": _find_column(headers, _HIGH_ALIASES),
            "low": _find_column(headers, _LOW_ALIASES),
            "close": self._close_col or _find_column(headers, _CLOSE_ALIASES),
            "volume": _find_column(headers, _VOLUME_ALIASES),
            "source": _find_column(headers, _SOURCE_ALIASES),
        }

    def _parse_date(self, value: str | None) -> date | None:
        if not value:
            return None
        value = value.strip()
        try:
            return date.fromisoformat(value)
        except ValueError:
            pass
        try:
            return datetime.strptime(value, self._date_format).date()
        except ValueError:
            return None

    def _source_of(self, row: dict, named: str | None) -> str:
        """Provenance from a source column or the unnamed trailing field of an export."""
        if not named:
            extra = row.get(None) or []
            named = extra[0] if extra else None
        return (named or "").strip() or self.source

    def adapt(self, raw_data: Any) -> list[Bar]:
        """Parse CSV rows (list of dicts) into a list of bars sorted by date.

        Raises
        ------
        ValueError
            If no date or close column can be found.
        """
        if not raw_data:
            return []

        headers = [h for h in raw_data[0].keys() if h is not None]
        cols = self._resolve_columns(headers)

        if cols["date"] is None:
            raise ValueError(f"Cannot find date column in headers: {headers}")
        if cols["close"] is None:
            raise ValueError(f"Cannot find close column in headers: {headers}")

        def cell(row: dict, name: str) -> str | None:
            col = cols[name]
            return row.get(col) if col else None

        bars: list[Bar] = []
        malformed = 0
        for row in raw_data:
            bar_date = self._parse_date(cell(row, "date"))
            close = _number(cell(row, "close"))
            if bar_date is None or close is None:
                malformed += 1
                continue
            volume = _number(cell(row, "volume"))
            bars.append(
                Bar(
                    date=bar_date,
                    open=_number(cell(row, "open")),
                    high=_number(cell(row, "high")),
                    low=_number(cell(row, "low")),
                    close=close,
                    volume=int(volume) if volume is not None and volume >= 0 else 0,
                    source=self._source_of(row, cell(row, "source")),
                )
            )

        if malformed:
            logger.warning("Skipped %d malformed CSV rows", malformed)
        return sorted(bars, key=lambda b: b.date)


def load_csv_bars(filepath: str, **adapter_kwargs: Any) -> list[Bar]:
    """Convenience function: load bars from a CSV file.

    Parameters
    ----------
    filepath : str
        Path to the CSV file.
    **adapter_kwargs
        Passed to CSVBarAdapter constructor.

    Returns
    -------
    list[Bar]
        Parsed and sorted bars.
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {filepath}")

    rows = rows_from_text(path.read_text(encoding="utf-8"))
    adapter = CSVBarAdapter(**adapter_kwargs)
    return adapter.adapt(rows)
