"""
Runtime wiring.

Selects the status store once at startup and assembles the manager, the
timeout sweeper and the dispatcher around it.
"""

from __future__ import annotations

from .config import PostgresStoreConfig, RedisStoreConfig, Settings, get_settings
from .dispatch import JobDispatcher
from .errors import ConfigurationError, MissingConnectionError
from .jobs.manager import JobManager
from .jobs.store import InMemoryStatusStore, StatusStore
from .jobs.sweeper import TimeoutSweeper
from .logging import configure_logging
from .storage.postgres import PostgresStatusStore
from .storage.redis import RedisStatusStore


async def build_store(settings: Settings) -> StatusStore:
    """Create the configured status store and make sure it is usable.

    Raises:
        MissingConnectionError: If a shared backend has no connection string
        ConfigurationError: If the backend name is unknown
        StoreUnavailableError: If the backend cannot be reached
    """
    config = settings.store
    backend = config.backend

    if backend == "memory":
        store: StatusStore = InMemoryStatusStore()
    elif backend == "postgres":
        if not isinstance(config, PostgresStoreConfig) or not config.dsn:
            raise MissingConnectionError("postgres", "dsn")
        store = await PostgresStatusStore.connect(
            config.dsn,
            config.table_name,
            min_size=config.min_pool_size,
            max_size=config.max_pool_size,
        )
    elif backend == "redis":
        if not isinstance(config, RedisStoreConfig) or not config.redis_url:
            raise MissingConnectionError("redis", "redis_url")
        store = RedisStatusStore.from_url(
            config.redis_url,
            key_prefix=config.key_prefix,
            active_ttl_seconds=config.active_ttl_seconds,
            terminal_ttl_seconds=config.terminal_ttl_seconds,
            index_cap=config.index_cap,
        )
    else:
        raise ConfigurationError(f"Unknown store backend: {backend!r}")

    await store.ensure_ready()
    return store


class LroRuntime:
    """Store, manager, sweeper and dispatcher for one instance.

    Example:
        ```python
        async with LroRuntime(Settings.from_env()) as runtime:
            app.include_router(create_router(runtime.manager, runtime.settings))
            accepted = await runtime.dispatcher.submit(endpoint, work)
        ```
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        store: StatusStore | None = None,
    ):
        self.settings = settings or get_settings()
        self._store = store
        self._owns_store = store is None
        self._manager: JobManager | None = None
        self._sweeper: TimeoutSweeper | None = None
        self._dispatcher: JobDispatcher | None = None

    @property
    def started(self) -> bool:
        return self._manager is not None

    @property
    def store(self) -> StatusStore:
        if self._store is None:
            raise RuntimeError("LroRuntime has not been started")
        return self._store

    @property
    def manager(self) -> JobManager:
        if self._manager is None:
            raise RuntimeError("LroRuntime has not been started")
        return self._manager

    @property
    def sweeper(self) -> TimeoutSweeper:
        if self._sweeper is None:
            raise RuntimeError("LroRuntime has not been started")
        return self._sweeper

    @property
    def dispatcher(self) -> JobDispatcher:
        if self._dispatcher is None:
            raise RuntimeError("LroRuntime has not been started")
        return self._dispatcher

    async def start(self) -> None:
        if self.started:
            return

        log_config = self.settings.logging
        logger = configure_logging(
            level=log_config.level,
            json_output=log_config.format == "json",
            log_file=log_config.log_file,
        )

        if self._store is None:
            self._store = await build_store(self.settings)
        else:
            await self._store.ensure_ready()

        jobs = self.settings.jobs
        self._manager = JobManager(self._store, instance_id=jobs.instance_id)
        self._sweeper = TimeoutSweeper(self._store, interval_seconds=jobs.timeout_check_interval_seconds)
        self._dispatcher = JobDispatcher(
            self._manager,
            base_url=jobs.base_url,
            default_timeout_seconds=jobs.default_timeout_seconds,
        )
        self._sweeper.start()

        logger.info(
            "Runtime started",
            backend=self._store.backend_name,
            instance_id=self._manager.instance_id,
        )

    async def stop(self) -> None:
        if not self.started:
            return

        await self.dispatcher.aclose()
        await self.sweeper.stop()
        if self._owns_store:
            await self.store.close()
            self._store = None

        self._manager = None
        self._sweeper = None
        self._dispatcher = None

    async def __aenter__(self) -> LroRuntime:
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()


__all__ = ["build_store", "LroRuntime"]
