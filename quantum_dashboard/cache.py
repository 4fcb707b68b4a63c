"""
In-memory cache of the six unit exports.

QuantumCache owns one immutable CacheState. A refresh loads every unit in
parallel, keeps the previous snapshot of any unit that fails, and publishes
the new state by swapping a single reference, so a reader sees either the
old state or the new one in full. Only one refresh runs at a time; callers
arriving while it runs wait for it and share its report.
"""

import logging
import threading
from collections.abc import Callable, Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from types import MappingProxyType

import pandas as pd

from .config import UNITS
from .errors import UnitLoadError, UpstreamUnavailableError
from .kpis import get_quantum_data
from .loaders import BlobStore, load_unit
from .transforms import build_row_measures

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class UnitSnapshot:
    """Raw rows of one unit plus their resolved measures."""

    unit: str
    rows: pd.DataFrame
    measures: pd.DataFrame
    loaded_at: datetime | None = None

    @classmethod
    def empty(cls, unit: str) -> "UnitSnapshot":
        return cls(unit=unit, rows=pd.DataFrame(), measures=build_row_measures(pd.DataFrame()))

    @classmethod
    def from_rows(cls, unit: str, rows: pd.DataFrame, loaded_at: datetime) -> "UnitSnapshot":
        return cls(unit=unit, rows=rows, measures=build_row_measures(rows), loaded_at=loaded_at)


@dataclass(frozen=True)
class CacheState:
    """Everything readers see; replaced wholesale by each refresh."""

    units: Mapping[str, UnitSnapshot]
    last_fetch_time: datetime | None = None
    live_view: tuple | None = None

    @classmethod
    def initial(cls) -> "CacheState":
        return cls(units=MappingProxyType({unit: UnitSnapshot.empty(unit) for unit in UNITS}))

    @property
    def has_data(self) -> bool:
        """True once any unit has loaded successfully."""
        return any(s.loaded_at is not None for s in self.units.values())


@dataclass(frozen=True)
class RefreshReport:
    started: datetime
    finished: datetime
    loaded: tuple[str, ...]
    failed: Mapping[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "started": self.started.isoformat(),
            "finished": self.finished.isoformat(),
            "loaded": list(self.loaded),
            "failed": dict(self.failed),
        }


class QuantumCache:
    """Refreshable snapshot of every unit export."""

    def __init__(
        self,
        store: BlobStore,
        stale_after: timedelta = timedelta(minutes=180),
        max_workers: int = len(UNITS),
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.stale_after = stale_after
        self.max_workers = max_workers
        self._clock = clock
        self._state = CacheState.initial()
        self._swap_lock = threading.Lock()
        self._refresh_lock = threading.Lock()
        self._last_report: RefreshReport | None = None
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------
    @property
    def state(self) -> CacheState:
        return self._state

    @property
    def refreshing(self) -> bool:
        return self._refresh_lock.locked()

    @property
    def last_report(self) -> RefreshReport | None:
        return self._last_report

    def ensure_loaded(self) -> CacheState:
        """Return the current state, refreshing first if nothing was ever loaded.

        Raises
        ------
        UpstreamUnavailableError if the refresh could not load any unit.
        """
        state = self._state
        if state.has_data:
            return state

        logger.info("Cache empty, refreshing on demand")
        report = self.refresh()
        state = self._state
        if not state.has_data:
            failed = dict(report.failed) if report else {}
            raise UpstreamUnavailableError(
                "Unit exports are unavailable, try again later",
                context={"failed": failed},
            )
        return state

    def stale_units(self, now: datetime | None = None) -> list[str]:
        """Units with no successful load within ``stale_after``."""
        now = now or self._clock()
        stale = []
        for unit, snapshot in self._state.units.items():
            if snapshot.loaded_at is None or now - snapshot.loaded_at > self.stale_after:
                stale.append(unit)
        return stale

    def status(self) -> dict:
        state = self._state
        stale = set(self.stale_units())
        return {
            "lastFetchTime": state.last_fetch_time.isoformat() if state.last_fetch_time else None,
            "refreshing": self.refreshing,
            "units": {
                unit: {
                    "rows": len(snapshot.rows),
                    "loadedAt": snapshot.loaded_at.isoformat() if snapshot.loaded_at else None,
                    "stale": unit in stale,
                }
                for unit, snapshot in state.units.items()
            },
        }

    # ------------------------------------------------------------------
    # Refreshing
    # ------------------------------------------------------------------
    def refresh(self) -> RefreshReport | None:
        """Reload every unit, or wait for the refresh already in flight."""
        if not self._refresh_lock.acquire(blocking=False):
            logger.info("Refresh already in flight, waiting for it")
            with self._refresh_lock:
                return self._last_report
        try:
            report = self._refresh_all()
            self._last_report = report
            return report
        finally:
            self._refresh_lock.release()

    def _load_snapshot(self, unit: str) -> UnitSnapshot:
        rows = load_unit(self.store, unit)
        return UnitSnapshot.from_rows(unit, rows, loaded_at=self._clock())

    def _refresh_all(self) -> RefreshReport:
        started = self._clock()
        units = dict(self._state.units)
        loaded: list[str] = []
        failed: dict[str, str] = {}

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="quantum-load") as pool:
            futures = {pool.submit(self._load_snapshot, unit): unit for unit in UNITS}
            for future in as_completed(futures):
                unit = futures[future]
                try:
                    units[unit] = future.result()
                except UnitLoadError as exc:
                    logger.error("Error caching %s, keeping previous data: %s", unit, exc.message)
                    failed[unit] = exc.message
                    continue
                except Exception as exc:
                    logger.exception("Unexpected error caching %s, keeping previous data", unit)
                    failed[unit] = str(exc)
                    continue
                loaded.append(unit)

        try:
            live_view = tuple(get_quantum_data(units))
        except Exception:
            logger.exception("Could not build the default live view")
            live_view = None
        finished = self._clock()
        new_state = CacheState(
            units=MappingProxyType(units),
            last_fetch_time=finished,
            live_view=live_view,
        )
        with self._swap_lock:
            self._state = new_state

        stale = self.stale_units(finished)
        if stale:
            logger.warning("Serving stale data for %s", ", ".join(stale))
        logger.info(
            "Refresh finished in %.1fs: %d loaded, %d failed",
            (finished - started).total_seconds(), len(loaded), len(failed),
        )
        return RefreshReport(
            started=started,
            finished=finished,
            loaded=tuple(sorted(loaded)),
            failed=failed,
        )

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------
    def start(self, interval_seconds: float) -> None:
        """Refresh now and then every ``interval_seconds`` on a daemon thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run_schedule,
            args=(interval_seconds,),
            name="quantum-refresh",
            daemon=True,
        )
        self._thread.start()
        logger.info("Scheduled refresh every %.0f seconds", interval_seconds)

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run_schedule(self, interval_seconds: float) -> None:
        while not self._stop.is_set():
            try:
                self.refresh()
            except Exception:
                logger.exception("Scheduled refresh failed")
            self._stop.wait(interval_seconds)
