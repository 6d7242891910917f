import asyncio
import os
import time

import discord
from discord.ext import commands
from dotenv import load_dotenv

from config.config_loader import ConfigLoader
from utils.logging import get_logger
from utils.tasks import spawn

# Initialize logger
logger = get_logger(__name__)

# Load environment variables
load_dotenv()

# Load configuration using ConfigLoader
config = ConfigLoader.load_config()

# Load sensitive information from .env
TOKEN = os.getenv("DISCORD_TOKEN")

# No text commands; the bot only reacts to events
PREFIX = commands.when_mentioned

# Configure intents - start from none and enable only what's required
intents = discord.Intents.none()
intents.guilds = True  # Required: channel create/delete events and cache
intents.members = True  # Required: member lookup for moves and roles
intents.voice_states = True  # Required: lobby joins and empty-channel detection
intents.guild_messages = True  # Required: messages posted in voice chats and threads
intents.message_content = True  # Required: relayed message text

# List of initial extensions to load
initial_extensions = [
    "cogs.voice.events",
    "cogs.relay.events",
]


class MyBot(commands.Bot):
    """Bot with project-specific attributes and helpers."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)

        # Assign the entire config to the bot instance
        self.config = config
        self.services = None

        # Initialize uptime tracking
        self.start_time = time.monotonic()
        self._background_tasks: set[asyncio.Task] = set()

    def _track_task(self, task: asyncio.Task, label: str | None = None) -> None:
        """Track a background task for clean shutdown and log exceptions."""

        name = label or task.get_name()
        self._background_tasks.add(task)

        def _cleanup(done: asyncio.Task) -> None:
            self._background_tasks.discard(done)
            if done.cancelled():
                logger.debug("Background task %s cancelled", name)
                return
            exc = done.exception()
            if exc:
                logger.exception("Background task %s failed", name, exc_info=exc)

        task.add_done_callback(_cleanup)

    async def setup_hook(self) -> None:
        """Initialize services and load cogs."""
        from services.service_container import ServiceContainer

        self.services = ServiceContainer(self)
        await self.services.initialize()
        logger.info("ServiceContainer initialized")

        for ext in initial_extensions:
            try:
                await self.load_extension(ext)
                logger.info(f"Loaded extension: {ext}")
            except Exception as e:
                logger.exception(f"Failed to load extension {ext}", exc_info=e)
                raise

        self._track_task(spawn(self.health_report_task()), "health_report")

    async def on_ready(self) -> None:
        """Called when the bot is ready."""
        if not self.user:
            logger.warning("Bot user is not initialized")
            return
        logger.info(f"Logged in as {self.user} (ID: {self.user.id})")

        guild_id = self.services.settings.guild_id
        guild = self.get_guild(guild_id)
        if guild is None:
            logger.warning(f"Configured guild {guild_id} is not visible to the bot")
            return
        await self.check_bot_permissions(guild)

    async def check_bot_permissions(self, guild: discord.Guild) -> None:
        """Verify required guild-level permissions and log any missing ones."""
        required_permissions = [
            "manage_roles",
            "manage_channels",
            "manage_webhooks",
            "view_channel",
            "send_messages",
            "send_messages_in_threads",
            "create_public_threads",
            "read_message_history",
            "connect",
            "move_members",
        ]

        if not guild.me:
            logger.warning(
                "Bot permissions cannot be checked because the bot member is not cached."
            )
            return

        bot_member = guild.me
        if missing_permissions := [
            perm
            for perm in required_permissions
            if not getattr(bot_member.guild_permissions, perm, False)
        ]:
            logger.warning(
                f"Missing permissions in guild '{guild.name}': {', '.join(missing_permissions)}"
            )
        else:
            logger.info(
                f"All required permissions are present in guild '{guild.name}'."
            )

    async def health_report_task(self) -> None:
        """Periodically log a health summary."""
        await self.wait_until_ready()
        interval_seconds = self.services.settings.health_report_interval_seconds

        while not self.is_closed():
            try:
                summary = await self.services.health.get_health_summary(
                    self, self.services.get_all_services()
                )
                logger.info(
                    "Health report: %s",
                    summary["overall_status"],
                    extra={"health": summary},
                )
            except asyncio.CancelledError:
                logger.info("Health report task cancelled")
                break
            except Exception as exc:
                logger.exception("Error building health report", exc_info=exc)

            await asyncio.sleep(interval_seconds)

    @property
    def uptime(self) -> str:
        """
        Calculates the bot's uptime.

        Returns:
            str: The uptime as a formatted string.
        """
        now = time.monotonic()
        delta = int(now - self.start_time)
        hours, remainder = divmod(delta, 3600)
        minutes, seconds = divmod(remainder, 60)
        return f"{hours}h {minutes}m {seconds}s"

    async def close(self) -> None:
        """
        Closes the bot and cleans up all resources.
        """
        logger.info("Shutting down the bot.")

        # Cancel and await tracked background tasks
        for task in list(self._background_tasks):
            task.cancel()
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
            self._background_tasks.clear()

        # Cleanup services; this cancels pending channel cleanups
        if self.services:
            try:
                await self.services.cleanup()
            except Exception as e:
                logger.exception("Error cleaning up services", exc_info=e)

        await super().close()


bot = MyBot(command_prefix=PREFIX, intents=intents)

# Only auto-run if not in explicit dry-run context (TESTBOT_DRY_RUN)
if os.getenv("TESTBOT_DRY_RUN") != "1":
    if not TOKEN:
        logger.critical("DISCORD_TOKEN not found in environment variables.")
        raise ValueError("DISCORD_TOKEN not set.")
    bot.run(TOKEN, log_handler=None)
