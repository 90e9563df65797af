"""Instrument registry: resolves user input to an Instrument."""

from __future__ import annotations

import csv
import logging
from collections.abc import Iterable
from pathlib import Path

from pydantic import ValidationError

from stockfeed.core.config import RegistryConfig
from stockfeed.core.models import CASH, AssetType, Exchange, Instrument

logger = logging.getLogger(__name__)

_EXCHANGES = {e.value.lower(): e for e in Exchange} | {e.name.lower(): e for e in Exchange}


def parse_exchange(value: str) -> Exchange:
    """Case-insensitive lookup by value ("London") or name ("LONDON")."""
    try:
        return _EXCHANGES[value.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown exchange: {value!r}") from None


class InstrumentRegistry:
    """Known instruments, looked up by code, ISIN or ``EXCHANGE:CODE``.

    Unknown codes resolve to an equity on the default exchange with the
    default feed, so any ticker the feeds understand can still be fetched.
    The word "cash" always resolves to the synthetic cash instrument.
    """

    def __init__(
        self,
        instruments: Iterable[Instrument] = (),
        default_exchange: Exchange = Exchange.NA,
        default_source: str = "yahoo",
    ) -> None:
        self._default_exchange = default_exchange
        self._default_source = default_source
        self._by_code: dict[str, Instrument] = {}
        self._by_isin: dict[str, Instrument] = {}
        self._by_key: dict[str, Instrument] = {}
        self.register(CASH)
        for instrument in instruments:
            self.register(instrument)

    @classmethod
    def from_config(cls, config: RegistryConfig) -> InstrumentRegistry:
        instruments: list[Instrument] = []
        if config.instruments_path:
            instruments = load_instruments_csv(config.instruments_path)
        return cls(
            instruments,
            default_exchange=config.default_exchange,
            default_source=config.default_source,
        )

    def register(self, instrument: Instrument) -> None:
        self._by_code.setdefault(instrument.code, instrument)
        self._by_key[instrument.key.upper()] = instrument
        if instrument.isin:
            self._by_isin[instrument.isin.upper()] = instrument

    def __len__(self) -> int:
        return len(self._by_key)

    def __contains__(self, text: object) -> bool:
        if not isinstance(text, str):
            return False
        key = text.strip().upper()
        return key in self._by_code or key in self._by_isin or key in self._by_key

    def resolve(self, text: str) -> Instrument:
        """Return the instrument for ``text``.

        Raises
        ------
        ValueError
            If ``text`` is blank or names an unknown exchange.
        """
        key = text.strip().upper()
        if not key:
            raise ValueError("instrument code must not be blank")

        for table in (self._by_code, self._by_isin, self._by_key):
            if key in table:
                return table[key]

        if ":" in key:
            exchange, code = key.split(":", 1)
            return Instrument(
                code=code,
                exchange=parse_exchange(exchange),
                source=self._default_source,
            )

        return Instrument(
            code=key,
            exchange=self._default_exchange,
            source=self._default_source,
        )


def load_instruments_csv(path: str | Path) -> list[Instrument]:
    """Load instruments from a CSV with columns
    ``code,name,isin,exchange,asset_type,source,currency``.

    Only ``code`` is required. Invalid rows are logged and skipped.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Instrument list not found: {path}")

    instruments: list[Instrument] = []
    with open(p, newline="", encoding="utf-8") as f:
        for line_no, row in enumerate(csv.DictReader(f), start=2):
            fields = {k.strip().lower(): (v or "").strip() for k, v in row.items() if k}
            try:
                instruments.append(
                    Instrument(
                        code=fields.get("code", ""),
                        name=fields.get("name") or None,
                        isin=fields.get("isin") or None,
                        exchange=parse_exchange(fields.get("exchange") or Exchange.NA.value),
                        asset_type=AssetType(
                            (fields.get("asset_type") or AssetType.EQUITY.value).lower()
                        ),
                        source=(fields.get("source") or "yahoo").lower(),
                        currency=fields.get("currency") or None,
                    )
                )
            except (ValidationError, ValueError) as e:
                logger.warning("Skipping instrument row %d in %s: %s", line_no, p, e)

    logger.info("Loaded %d instruments from %s", len(instruments), p)
    return instruments
