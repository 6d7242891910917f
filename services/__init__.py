"""
Services package for the Discord bot.

The lifecycle service manages temporary voice channels, the relay service
mirrors voice channel chat into archive threads. Both talk to Discord only
through the ``Gateway`` interface.
"""

from .base import BaseService
from .channel_directory import ChannelDirectory
from .gateway import Gateway
from .health_service import HealthService
from .lifecycle_service import LifecycleService
from .nonce_ledger import NonceLedger
from .relay_service import RelayService
from .service_container import ServiceContainer

__all__ = [
    "BaseService",
    "ChannelDirectory",
    "Gateway",
    "HealthService",
    "LifecycleService",
    "NonceLedger",
    "RelayService",
    "ServiceContainer",
]
