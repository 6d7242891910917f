"""
Service Container

Builds the bot's services in dependency order and tears them down in reverse.
"""

from typing import TYPE_CHECKING, Optional

from config.config_loader import ConfigLoader
from config.settings import BotSettings
from utils.logging import get_logger

from .base import BaseService
from .channel_directory import ChannelDirectory
from .gateway import Gateway
from .health_service import HealthService
from .lifecycle_service import LifecycleService
from .nonce_ledger import NonceLedger
from .relay_service import RelayService

if TYPE_CHECKING:
    from discord.ext.commands import Bot


class ServiceContainer:
    """
    Central container for managing all bot services.

    ``settings`` and ``gateway`` may be passed in; otherwise settings come from
    ``ConfigLoader`` and the gateway is the discord.py adapter around ``bot``.
    """

    def __init__(
        self,
        bot: Optional["Bot"] = None,
        *,
        settings: BotSettings | None = None,
        gateway: Gateway | None = None,
    ) -> None:
        self.logger = get_logger("services.container")
        self.bot = bot
        self._settings = settings
        self._gateway = gateway
        self._health: HealthService | None = None
        self._lifecycle: LifecycleService | None = None
        self._relay: RelayService | None = None
        self._initialized = False

    @property
    def settings(self) -> BotSettings:
        """Get the typed bot settings."""
        if self._settings is None:
            raise RuntimeError("Settings not loaded")
        return self._settings

    @property
    def gateway(self) -> Gateway:
        """Get the Discord gateway adapter."""
        if self._gateway is None:
            raise RuntimeError("Gateway not initialized")
        return self._gateway

    @property
    def health(self) -> HealthService:
        """Get the health service."""
        if self._health is None:
            raise RuntimeError("HealthService not initialized")
        return self._health

    @property
    def lifecycle(self) -> LifecycleService:
        """Get the voice channel lifecycle service."""
        if self._lifecycle is None:
            raise RuntimeError("LifecycleService not initialized")
        return self._lifecycle

    @property
    def relay(self) -> RelayService:
        """Get the relay service."""
        if self._relay is None:
            raise RuntimeError("RelayService not initialized")
        return self._relay

    def get_all_services(self) -> list[BaseService]:
        """Get all initialized services for health monitoring."""
        services: list[BaseService] = []
        if self._health:
            services.append(self._health)
        if self._lifecycle:
            services.append(self._lifecycle)
        if self._relay:
            services.append(self._relay)
        return services

    async def initialize(self) -> None:
        """Initialize all services in dependency order."""
        if self._initialized:
            self.logger.warning("ServiceContainer already initialized")
            return

        try:
            self.logger.info("Initializing services")

            if self._settings is None:
                self._settings = BotSettings.from_config(ConfigLoader.load_config())

            if self._gateway is None:
                if self.bot is None:
                    raise RuntimeError("Bot instance required for DiscordGateway")
                from helpers.discord_api import DiscordGateway

                self._gateway = DiscordGateway(self.bot, self._settings.relay)

            self._health = HealthService()
            await self._health.initialize()

            self._lifecycle = LifecycleService(
                self._settings, self._gateway, ledger=NonceLedger(), health=self._health
            )
            await self._lifecycle.initialize()

            self._relay = RelayService(
                self._settings,
                self._gateway,
                directory=ChannelDirectory(),
                health=self._health,
            )
            await self._relay.initialize()

            self._initialized = True
            self.logger.info("All services initialized successfully")

        except Exception as e:
            self.logger.exception("Failed to initialize services", exc_info=e)
            raise

    async def cleanup(self) -> None:
        """Clean up all services in reverse dependency order."""
        if not self._initialized:
            return

        self.logger.info("Cleaning up services")

        if self._relay:
            await self._relay.shutdown()
            self._relay = None

        if self._lifecycle:
            await self._lifecycle.shutdown()
            self._lifecycle = None

        if self._health:
            await self._health.shutdown()
            self._health = None

        self._initialized = False
        self.logger.info("Services cleaned up")
