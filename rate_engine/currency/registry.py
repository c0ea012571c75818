"""Order-stable currency registry holding the shared rate table."""
from __future__ import annotations

import threading
from typing import Callable, Iterable, List, Mapping, Optional, Tuple

from rate_engine.currency.models import (
    BUILTIN_CURRENCIES,
    CurrencyClass,
    CurrencyEntry,
    RateTable,
)
from rate_engine.utils.errors import (
    DuplicateCodeError,
    InvalidRateError,
    NotFoundError,
    ValidationError,
)
from rate_engine.utils.logging import get_logger
from rate_engine.utils.validation import normalize_code, validate_rate


logger = get_logger(__name__)

TableListener = Callable[[RateTable], None]


class CurrencyRegistry:
    """Thread-safe registry of built-in and custom currencies.

    The whole table is an immutable ``RateTable`` that is swapped in one
    assignment, so a reader holding ``registry.table`` never sees a partially
    applied update.
    """

    def __init__(
        self,
        builtins: Iterable[CurrencyEntry] = BUILTIN_CURRENCIES,
        base_code: str = "USD",
    ):
        entries: List[CurrencyEntry] = []
        seen = set()
        for entry in builtins:
            code = normalize_code(entry.code)
            if code in seen:
                raise DuplicateCodeError(f"Duplicate built-in currency code: {code}")
            seen.add(code)
            entries.append(
                CurrencyEntry(
                    code=code,
                    symbol=entry.symbol,
                    name=entry.name,
                    rate=validate_rate(entry.rate),
                    currency_class=entry.currency_class,
                    is_custom=False,
                )
            )

        self.base_code = normalize_code(base_code)
        if self.base_code not in seen:
            raise NotFoundError(f"Base currency {self.base_code} is not a built-in currency")

        self._table = RateTable(entries=tuple(entries))
        self._lock = threading.Lock()
        self._listeners: List[TableListener] = []

    @property
    def table(self) -> RateTable:
        """Current immutable snapshot."""
        return self._table

    def list(self) -> Tuple[CurrencyEntry, ...]:
        """Built-ins in canonical order, then customs in insertion order."""
        return self._table.entries

    def get(self, code: str) -> CurrencyEntry:
        entry = self._table.find(code)
        if entry is None:
            raise NotFoundError(f"Unknown currency code: {code}")
        return entry

    def __contains__(self, code: object) -> bool:
        return code in self._table

    def __len__(self) -> int:
        return len(self._table)

    def add_custom(
        self,
        code: str,
        symbol: str,
        name: str,
        rate: float,
        currency_class: CurrencyClass = CurrencyClass.FIAT,
    ) -> CurrencyEntry:
        """Register a user-defined currency with a manually supplied rate."""
        normalized = normalize_code(code)
        value = validate_rate(rate)
        entry = CurrencyEntry(
            code=normalized,
            symbol=symbol or normalized,
            name=name or normalized,
            rate=value,
            currency_class=CurrencyClass(currency_class),
            is_custom=True,
        )

        with self._lock:
            current = self._table
            if normalized in current.by_code:
                raise DuplicateCodeError(f"Currency code already registered: {normalized}")
            table = RateTable(entries=current.entries + (entry,), version=current.version + 1)
            self._table = table

        logger.info(f"Registered custom currency {normalized}", extra={"codes": [normalized]})
        self._notify(table)
        return entry

    def apply_rates(self, rates: Mapping[str, object]) -> int:
        """
        Replace the rates of registered feed currencies in one atomic swap.

        Custom entries keep their user supplied rate even when the mapping
        carries the same code. Codes not in the registry are ignored, as are
        the base currency (pinned to 1) and values that are not positive
        finite numbers.

        Returns:
            Number of entries whose rate changed
        """
        updates = {}
        skipped = []
        for raw_code, raw_rate in rates.items():
            try:
                code = normalize_code(raw_code)
            except ValidationError:
                skipped.append(raw_code)
                continue
            if code == self.base_code:
                continue
            try:
                updates[code] = validate_rate(raw_rate)
            except InvalidRateError:
                skipped.append(code)

        if skipped:
            logger.warning(
                f"Ignoring {len(skipped)} invalid rate value(s)",
                extra={"codes": [str(c) for c in skipped]},
            )

        with self._lock:
            current = self._table
            changed = 0
            entries = []
            for entry in current.entries:
                new_rate = updates.get(entry.code)
                if new_rate is not None and not entry.is_custom and new_rate != entry.rate:
                    entries.append(entry.with_rate(new_rate))
                    changed += 1
                else:
                    entries.append(entry)

            if not changed:
                return 0

            table = RateTable(entries=tuple(entries), version=current.version + 1)
            self._table = table

        logger.debug(f"Applied {changed} rate update(s), table version {table.version}")
        self._notify(table)
        return changed

    def subscribe(self, listener: TableListener) -> Callable[[], None]:
        """Register a callback receiving each new table; returns an unsubscribe function."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, table: RateTable) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(table)
            except Exception as e:
                logger.error(f"Rate table listener {listener!r} failed: {e}")

    def resolve(self, code: Optional[str]) -> Optional[CurrencyEntry]:
        """Like ``get`` but returns None for a missing code."""
        if code is None:
            return None
        return self._table.find(code)
