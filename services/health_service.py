"""
Health service for monitoring bot health and providing status information.
"""

import asyncio
import time
from typing import Any

import discord
import psutil

from config.config_loader import ConfigLoader

from .base import BaseService

DEFAULT_METRICS = (
    "voice_state_events",
    "voice_channels_created",
    "voice_channels_deleted",
    "cleanups_scheduled",
    "cleanups_superseded",
    "cleanups_aborted_reoccupied",
    "lifecycle_failures",
    "messages_relayed_to_archive",
    "messages_relayed_to_voice",
    "messages_dropped",
    "archive_threads_created",
    "relay_failures",
)


class HealthService(BaseService):
    """
    Service for monitoring and reporting bot health status.

    Controllers record counters here; the bot logs a summary periodically.
    """

    def __init__(self) -> None:
        super().__init__("health")
        self.start_time = time.monotonic()
        self._metrics: dict[str, int] = {}
        self._metrics_lock = asyncio.Lock()

    async def _initialize_impl(self) -> None:
        """Initialize health service."""
        await self._reset_metrics()

    async def _reset_metrics(self) -> None:
        """Reset metrics to default values."""
        async with self._metrics_lock:
            self._metrics = {name: 0 for name in DEFAULT_METRICS}

    async def record_metric(self, metric_name: str, increment: int = 1) -> None:
        """
        Record a metric event.

        Args:
            metric_name: Name of the metric to increment
            increment: Amount to increment by (default 1)
        """
        async with self._metrics_lock:
            current = self._metrics.get(metric_name, 0)
            self._metrics[metric_name] = current + increment

    async def get_metrics(self) -> dict[str, int]:
        async with self._metrics_lock:
            return dict(self._metrics)

    def get_system_info(self) -> dict[str, Any]:
        """Process-level resource usage."""
        process = psutil.Process()

        return {
            "cpu_percent": process.cpu_percent(),
            "memory_mb": round(process.memory_info().rss / 1024 / 1024, 2),
            "threads": process.num_threads(),
            "uptime_seconds": round(time.monotonic() - self.start_time, 1),
        }

    @staticmethod
    def get_discord_info(bot: discord.Client) -> dict[str, Any]:
        """Gateway connection state."""
        return {
            "guilds": len(bot.guilds),
            "latency_ms": round(bot.latency * 1000, 2),
            "is_ready": bot.is_ready(),
            "is_closed": bot.is_closed(),
        }

    async def get_health_summary(
        self, bot: discord.Client | None, services: list[BaseService]
    ) -> dict[str, Any]:
        """
        Build the health report logged by the bot.

        Args:
            bot: Discord bot instance, if connected
            services: Services to include in the report

        Returns:
            Dict containing the complete health report
        """
        report: dict[str, Any] = {
            "timestamp": time.time(),
            "overall_status": "healthy",
            "system": self.get_system_info(),
            "config": ConfigLoader.get_config_status(),
            "services": {},
            "metrics": await self.get_metrics(),
        }
        if bot is not None:
            report["discord"] = self.get_discord_info(bot)

        statuses = []
        for service in services:
            try:
                service_health = await service.health_check()
            except Exception as e:
                service_health = {"status": "error", "error": str(e)}
            report["services"][service.name] = service_health
            statuses.append(service_health.get("status", "unknown"))

        if "error" in statuses or (bot is not None and not bot.is_ready()):
            report["overall_status"] = "degraded"

        return report

    def describe(self) -> dict[str, Any]:
        return {
            "uptime_seconds": round(time.monotonic() - self.start_time, 1),
            "metrics_tracked": len(self._metrics),
        }
