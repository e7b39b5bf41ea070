"""
Base class for services that own background resolution tasks.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Coroutine
from typing import Any

from svelte_config_cache.utils.logging import get_logger
from svelte_config_cache.utils.tasks import cancel_and_wait, spawn


class BaseService(ABC):
    """
    Lifecycle and task ownership shared by the cache services.

    A service is usable as soon as it is constructed; ``initialize`` only
    announces it and runs subclass setup once. Every task started through
    ``_spawn`` belongs to the service and is cancelled by ``shutdown``,
    whether or not ``initialize`` was ever called.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.logger = get_logger(f"services.{name}")
        self._initialized = False
        self._lock = asyncio.Lock()
        self._tasks: set[asyncio.Task[Any]] = set()

    async def initialize(self) -> None:
        """Initialize the service. Ensures single initialization."""
        async with self._lock:
            if self._initialized:
                return

            self.logger.info(f"Initializing {self.name} service")
            try:
                await self._initialize_impl()
                self._initialized = True
                self.logger.info(f"{self.name} service initialized successfully")
            except Exception as e:
                self.logger.exception(
                    "Failed to initialize %s service", self.name, exc_info=e
                )
                raise

    async def shutdown(self) -> None:
        """Cancel owned tasks and run subclass cleanup. Safe to call repeatedly."""
        async with self._lock:
            pending = [task for task in self._tasks if not task.done()]
            if self._initialized or pending:
                self.logger.info(
                    f"Shutting down {self.name} service ({len(pending)} pending tasks)"
                )
            try:
                await cancel_and_wait(pending)
                await self._shutdown_impl()
            except Exception as e:
                self.logger.exception(
                    "Error during %s service shutdown", self.name, exc_info=e
                )
            finally:
                self._tasks.clear()
                self._initialized = False

    def _spawn(self, coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task[Any]:
        """Start a task owned by this service."""
        task = spawn(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @abstractmethod
    async def _initialize_impl(self) -> None:
        """Subclass-specific initialization logic."""

    async def _shutdown_impl(self) -> None:
        """Subclass-specific cleanup after owned tasks are cancelled."""

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    @property
    def pending_tasks(self) -> int:
        return sum(1 for task in self._tasks if not task.done())

    async def health_check(self) -> dict[str, Any]:
        """
        Return health status of this service.

        Returns:
            Dict containing health information
        """
        return {
            "service": self.name,
            "initialized": self._initialized,
            "pending_tasks": self.pending_tasks,
            "status": "healthy" if self._initialized else "not_initialized",
        }
