"""SQLite-backed series cache.

Stores the merged, uninterpolated series per instrument. Writes replace the
whole series inside one transaction so a reader never sees half an update.
"""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path

import aiosqlite

from stockfeed.core.exceptions import StorageError
from stockfeed.core.models import Bar, Instrument, Series

logger = logging.getLogger(__name__)


class SqliteSeriesStore:
    """SQLite implementation of the SeriesStore protocol.

    Parameters
    ----------
    db_path : str
        Path to the SQLite database file.
        Created automatically if it doesn't exist.
    """

    name = "cache"

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._initialized = False

    async def _ensure_table(self) -> None:
        """Create the bars table if it doesn't exist."""
        if self._initialized:
            return

        try:
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
            async with aiosqlite.connect(self._db_path) as db:
                await db.execute(
                    """CREATE TABLE IF NOT EXISTS bars (
                        instrument TEXT NOT NULL,
                        date TEXT NOT NULL,
                        open REAL NOT NULL,
                        high REAL NOT NULL,
                        low REAL NOT NULL,
                        close REAL NOT NULL,
                        volume INTEGER NOT NULL DEFAULT 0,
                        source TEXT NOT NULL DEFAULT 'unknown',
                        PRIMARY KEY (instrument, date)
                    )"""
                )
                await db.commit()
        except (aiosqlite.Error, OSError) as e:
            raise StorageError(
                f"Failed to initialize series cache: {e}",
                context={"operation": "init", "path": self._db_path},
            ) from e
        self._initialized = True

    def is_available(self) -> bool:
        return True

    async def read_series(self, instrument: Instrument) -> Series | None:
        """Return the full cached series, or None if nothing is stored."""
        await self._ensure_table()

        try:
            async with aiosqlite.connect(self._db_path) as db:
                cursor = await db.execute(
                    """SELECT date, open, high, low, close, volume, source
                       FROM bars
                       WHERE instrument = ?
                       ORDER BY date""",
                    (instrument.key,),
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StorageError(
                f"Failed to read series for {instrument.key}: {e}",
                context={"operation": "read", "instrument": instrument.key},
            ) from e

        bars: list[Bar] = []
        malformed = 0
        for row in rows:
            try:
                bars.append(
                    Bar(
                        date=date.fromisoformat(row[0]),
                        open=row[1],
                        high=row[2],
                        low=row[3],
                        close=row[4],
                        volume=row[5],
                        source=row[6],
                    )
                )
            except (TypeError, ValueError):
                malformed += 1
        if malformed:
            logger.warning(
                "Ignored %d malformed cached bars for %s",
                malformed,
                instrument.key,
            )

        if not bars:
            return None
        return Series.from_bars(instrument, bars)

    async def write_series(self, instrument: Instrument, series: Series) -> int:
        """Replace the stored series for the instrument. Returns rows written."""
        await self._ensure_table()

        rows = [
            (
                instrument.key,
                bar.date.isoformat(),
                bar.open,
                bar.high,
                bar.low,
                bar.close,
                bar.volume,
                bar.source,
            )
            for bar in series.bars
        ]
        try:
            async with aiosqlite.connect(self._db_path) as db:
                await db.execute("DELETE FROM bars WHERE instrument = ?", (instrument.key,))
                await db.executemany(
                    """INSERT INTO bars
                       (instrument, date, open, high, low, close, volume, source)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                    rows,
                )
                await db.commit()
        except aiosqlite.Error as e:
            raise StorageError(
                f"Failed to write series for {instrument.key}: {e}",
                context={"operation": "write", "instrument": instrument.key},
            ) from e

        logger.info("Stored %d bars for %s", len(rows), instrument.key)
        return len(rows)

    async def fetch(
        self, instrument: Instrument, start: date, end: date
    ) -> Series | None:
        series = await self.read_series(instrument)
        if series is None:
            return None
        window = series.between(start, end)
        return window if len(window) else None

    async def fetch_latest_quote(self, instrument: Instrument) -> Bar | None:
        series = await self.read_series(instrument)
        return series.last if series is not None else None

    async def get_instruments(self) -> list[str]:
        """Return all distinct instrument keys in the cache."""
        await self._ensure_table()

        try:
            async with aiosqlite.connect(self._db_path) as db:
                cursor = await db.execute(
                    "SELECT DISTINCT instrument FROM bars ORDER BY instrument"
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StorageError(
                f"Failed to list cached instruments: {e}",
                context={"operation": "list"},
            ) from e

        return [row[0] for row in rows]

    async def coverage(self) -> list[dict[str, str | int]]:
        """Per-instrument bar count and date span, for status reporting."""
        await self._ensure_table()

        try:
            async with aiosqlite.connect(self._db_path) as db:
                cursor = await db.execute(
                    """SELECT instrument, COUNT(*), MIN(date), MAX(date)
                       FROM bars
                       GROUP BY instrument
                       ORDER BY instrument"""
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise StorageError(
                f"Failed to summarize cache: {e}",
                context={"operation": "coverage"},
            ) from e

        return [
            {"instrument": row[0], "bars": row[1], "first": row[2], "last": row[3]}
            for row in rows
        ]
