"""Feed and store protocols: the source-agnostic interface layer.

Architecture
------------
Every source of bars, remote or local, exposes the same small capability:

    RawSource → BarAdapter → list[Bar] → StockFeed → AcquisitionOrchestrator

- **StockFeed** is what the orchestrator talks to. Feeds are held in a
  priority-ordered collection and selected by name, not by type.

- **SeriesStore** is the persisted cache. It is a StockFeed that can also
  read and replace a whole series.

- **BarAdapter** turns a raw payload (chart JSON, CSV rows) into bars. A new
  source is one adapter plus one feed class.

Contract: ``fetch`` returns None when the source simply has no data and
raises ``FetchError`` (or ``ProviderUnavailableError``) when it could not
ask.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Protocol, runtime_checkable

from stockfeed.core.models import Bar, Instrument, Series


@runtime_checkable
class BarAdapter(Protocol):
    """Transforms a raw payload from one source into Bar records.

    Returns
    -------
    list[Bar]
        Bars sorted by date ascending. Records that cannot be parsed are
        dropped and counted in the log, never raised.
    """

    def adapt(self, raw_data: Any) -> list[Bar]: ...


@runtime_checkable
class StockFeed(Protocol):
    """Uniform capability implemented by every price source."""

    name: str

    def is_available(self) -> bool:
        """Cheap readiness check. Must not perform I/O."""
        ...

    async def fetch(
        self, instrument: Instrument, start: date, end: date
    ) -> Series | None:
        """Bars for ``[start, end]``, or None when the source has none."""
        ...

    async def fetch_latest_quote(self, instrument: Instrument) -> Bar | None:
        """Most recent single bar, used to top up today's price."""
        ...


@runtime_checkable
class SeriesStore(StockFeed, Protocol):
    """Persisted cache of full series, keyed by instrument."""

    async def read_series(self, instrument: Instrument) -> Series | None:
        """The whole cached series, or None if nothing is stored."""
        ...

    async def write_series(self, instrument: Instrument, series: Series) -> int:
        """Replace the stored series. Durable before returning."""
        ...

    async def get_instruments(self) -> list[str]:
        """Keys of all instruments with stored data."""
        ...
