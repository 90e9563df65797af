"""CSV serialization of a series for reporting consumers."""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterable
from pathlib import Path

from stockfeed.core.models import Bar, Instrument, Series

logger = logging.getLogger(__name__)

CSV_HEADER = ["date", "open", "high", "low", "close", "volume"]


def _row(bar: Bar, include_source: bool) -> list[str]:
    row = [
        bar.date.isoformat(),
        f"{bar.open:.2f}",
        f"{bar.high:.2f}",
        f"{bar.low:.2f}",
        f"{bar.close:.2f}",
        str(bar.volume),
    ]
    if include_source:
        row.append(bar.source)
    return row


def series_to_csv(bars: Series | Iterable[Bar], include_source: bool = True) -> str:
    """Render bars as CSV text.

    The header always has six columns. With ``include_source`` each row
    carries the provenance tag as a trailing seventh field.
    """
    if isinstance(bars, Series):
        bars = bars.bars
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for bar in bars:
        writer.writerow(_row(bar, include_source))
    return buf.getvalue()


def export_filename(instrument: Instrument) -> str:
    """``<exchange>_<code>.csv``, e.g. ``London_XDND.csv``."""
    return f"{instrument.exchange.value}_{instrument.code}.csv"


def write_series_csv(
    series: Series, directory: str | Path, include_source: bool = True
) -> Path:
    """Write the series to ``directory`` and return the file path."""
    path = Path(directory) / export_filename(series.instrument)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(series_to_csv(series, include_source), encoding="utf-8")
    logger.info("Exported %d bars to %s", len(series), path)
    return path
