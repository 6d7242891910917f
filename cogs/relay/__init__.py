"""
Relay Package

Feeds message events to the relay service.
"""

from .events import RelayEvents

__all__ = ["RelayEvents"]
