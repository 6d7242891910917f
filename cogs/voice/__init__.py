"""
Voice Package

Feeds voice state events to the lifecycle service.
"""

from .events import VoiceEvents

__all__ = ["VoiceEvents"]
