"""Primary/secondary display currency selection."""
from __future__ import annotations

import threading
from enum import Enum
from typing import Callable, List, Optional

from rate_engine.currency.models import CurrencyEntry, RateTable
from rate_engine.currency.registry import CurrencyRegistry
from rate_engine.utils.errors import SameAsPrimaryError, ValidationError
from rate_engine.utils.logging import get_logger


logger = get_logger(__name__)


class DisplayMode(str, Enum):
    SINGLE = "single"
    DUAL = "dual"


SelectionListener = Callable[["SelectionState"], None]


class SelectionState:
    """Tracks which currencies monetary values are rendered in.

    Only codes are stored; entries are resolved against the registry on
    access so callers always see current rates. The registry's change feed is
    used to fall back to the default currency if a selected code disappears.
    """

    def __init__(
        self,
        registry: CurrencyRegistry,
        default_code: str = "USD",
        primary: Optional[str] = None,
        secondary: Optional[str] = None,
    ):
        self.registry = registry
        default = registry.get(default_code)
        if default.is_crypto:
            raise ValidationError(f"Default currency must be fiat, got {default.code}")
        self.default_code = default.code
        self._lock = threading.Lock()
        self._listeners: List[SelectionListener] = []

        self._primary = registry.get(primary).code if primary else self.default_code
        self._secondary: Optional[str] = None
        self._show_both = False
        if secondary is not None:
            self.set_secondary(secondary)

        self._unsubscribe = registry.subscribe(self._on_table_change)

    @property
    def primary(self) -> CurrencyEntry:
        return self.registry.get(self._primary)

    @property
    def secondary(self) -> Optional[CurrencyEntry]:
        return self.registry.resolve(self._secondary)

    @property
    def show_both(self) -> bool:
        return self._show_both and self._secondary is not None

    @property
    def mode(self) -> DisplayMode:
        return DisplayMode.DUAL if self._secondary is not None else DisplayMode.SINGLE

    def set_primary(self, code: str) -> CurrencyEntry:
        entry = self.registry.get(code)
        with self._lock:
            self._primary = entry.code
            if self._secondary == entry.code:
                self._secondary = None
                self._show_both = False
        self._notify()
        return entry

    def set_secondary(self, code: Optional[str]) -> Optional[CurrencyEntry]:
        if code is None:
            with self._lock:
                self._secondary = None
                self._show_both = False
            self._notify()
            return None

        entry = self.registry.get(code)
        with self._lock:
            if entry.code == self._primary:
                raise SameAsPrimaryError(
                    f"Secondary currency cannot equal the primary currency ({entry.code})"
                )
            self._secondary = entry.code
        self._notify()
        return entry

    def set_show_both(self, show: bool) -> None:
        with self._lock:
            if self._secondary is None:
                return
            self._show_both = bool(show)
        self._notify()

    def subscribe(self, listener: SelectionListener) -> Callable[[], None]:
        """Register a callback invoked after every selection change."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        """Detach from the registry change feed."""
        self._unsubscribe()

    def _on_table_change(self, table: RateTable) -> None:
        with self._lock:
            if self._primary not in table:
                logger.warning(
                    f"Primary currency {self._primary} no longer registered, "
                    f"falling back to {self.default_code}"
                )
                self._primary = self.default_code
            if self._secondary is not None and (
                self._secondary not in table or self._secondary == self._primary
            ):
                logger.warning(f"Secondary currency {self._secondary} cleared")
                self._secondary = None
                self._show_both = False
        # rate-only changes still re-render converted values
        self._notify()

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(self)
            except Exception as e:
                logger.error(f"Selection listener {listener!r} failed: {e}")
