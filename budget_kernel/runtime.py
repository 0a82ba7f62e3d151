"""
KernelRuntime -- application-lifetime wiring of the kernel.

Builds the engine, storage port, page cache, notifier and revalidation
trigger from a ``KernelConfig`` at start, and tears them down at shutdown.
Web handlers and observers receive these objects from the runtime instead
of reaching for module-level globals.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from budget_kernel.config import KernelConfig
from budget_kernel.db.engine import build_engine, build_session_factory, session_scope
from budget_kernel.db.storage import SqlStorage
from budget_kernel.domain.clock import Clock, SystemClock
from budget_kernel.domain.timers import TimerScheduler
from budget_kernel.logging_config import configure_logging, get_logger
from budget_kernel.services.notifier import BudgetUpdateNotifier
from budget_kernel.services.observer import BudgetObserver
from budget_kernel.services.page_cache import InMemoryPageCache, PageCache
from budget_kernel.services.revalidation import RevalidationTrigger

logger = get_logger("runtime")


class KernelRuntime:
    """
    Owns the kernel's long-lived objects.

    Usage::

        runtime = KernelRuntime(load_config("budget.yaml"))
        runtime.start()
        try:
            serve(runtime)
        finally:
            runtime.shutdown()
    """

    def __init__(
        self,
        config: KernelConfig,
        clock: Clock | None = None,
        page_cache: PageCache | None = None,
        engine: Engine | None = None,
    ):
        self.config = config
        self.clock = clock or SystemClock()
        self.page_cache = page_cache or InMemoryPageCache()
        self._engine = engine
        self.session_factory: sessionmaker[Session] | None = None
        self.notifier: BudgetUpdateNotifier | None = None
        self.trigger: RevalidationTrigger | None = None

    @property
    def started(self) -> bool:
        return self.notifier is not None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Runtime not started. Call start() first.")
        return self._engine

    def start(self) -> None:
        if self.started:
            return
        configure_logging()
        if self._engine is None:
            self._engine = build_engine(self.config.database_url, echo=self.config.echo_sql)
        self.session_factory = build_session_factory(self._engine)
        self.notifier = BudgetUpdateNotifier(self.clock)
        self.trigger = RevalidationTrigger(
            SqlStorage(self._engine),
            self.page_cache,
            self.clock,
            stale_paths=self.config.stale_paths,
            usage_history_table=self.config.usage_history_table,
        )
        logger.info("runtime_started", extra={"dialect": self._engine.dialect.name})

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """A session that commits on success and rolls back on error."""
        if self.session_factory is None:
            raise RuntimeError("Runtime not started. Call start() first.")
        with session_scope(self.session_factory) as session:
            yield session

    def observer(self, scheduler: TimerScheduler, **kwargs) -> BudgetObserver:
        """Build an observer using the configured debounce and indicator timings."""
        if self.notifier is None:
            raise RuntimeError("Runtime not started. Call start() first.")
        kwargs.setdefault("debounce_ms", self.config.debounce_ms)
        kwargs.setdefault("indicator_ms", self.config.indicator_ms)
        return BudgetObserver(self.notifier, scheduler, self.clock, **kwargs)

    def shutdown(self) -> None:
        if not self.started:
            return
        self.notifier.close()
        self.notifier = None
        self.trigger = None
        self.session_factory = None
        self.engine.dispose()
        logger.info("runtime_stopped")
