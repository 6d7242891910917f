"""
Base service class providing common functionality for all services.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Coroutine
from typing import Any

from utils.logging import get_logger


class BaseService(ABC):
    """
    Abstract base class for all services in the bot.

    Provides logging, a single-shot initialization lifecycle and tracking for
    background tasks the service spawns, so shutdown can cancel them.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.logger = get_logger(f"services.{name}")
        self._initialized = False
        self._lock = asyncio.Lock()
        self._background_tasks: set[asyncio.Task] = set()

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
        """Shutdown the service, cancel its background tasks and cleanup resources."""
        if not self._initialized:
            return

        self.logger.info(f"Shutting down {self.name} service")
        try:
            await self._shutdown_impl()
            await self._cancel_background_tasks()
        except Exception as e:
            self.logger.exception(
                "Error during %s service shutdown", self.name, exc_info=e
            )
        finally:
            self._initialized = False

    async def _initialize_impl(self) -> None:
        """Subclass-specific initialization logic. Override if needed."""
        return None

    async def _shutdown_impl(self) -> None:
        """Subclass-specific shutdown logic. Override if needed."""
        return None

    def _spawn_background_task(
        self, coro: Coroutine[Any, Any, Any], *, name: str
    ) -> asyncio.Task:
        """Create and track a background task with exception logging."""

        task = asyncio.create_task(coro, name=name)
        self._background_tasks.add(task)

        def _discard_and_log(t: asyncio.Task) -> None:
            self._background_tasks.discard(t)
            if t.cancelled():
                self.logger.debug("Background task %s cancelled", name)
                return
            exc = t.exception()
            if exc:
                self.logger.exception("Background task %s failed", name, exc_info=exc)

        task.add_done_callback(_discard_and_log)
        return task

    async def _cancel_background_tasks(self) -> None:
        for task in list(self._background_tasks):
            task.cancel()
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
        self._background_tasks.clear()

    async def wait_for_background_tasks(self) -> None:
        """Wait until every tracked background task has finished."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)

    @abstractmethod
    def describe(self) -> dict[str, Any]:
        """Service-specific state for the health report."""

    async def health_check(self) -> dict[str, Any]:
        """
        Return health status of this service.

        Returns:
            Dict containing health information
        """
        return {
            "service": self.name,
            "initialized": self._initialized,
            "status": "healthy" if self._initialized else "not_initialized",
            "background_tasks": len(self._background_tasks),
            **self.describe(),
        }
