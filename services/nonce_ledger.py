"""
Per-channel deletion nonces owned by the lifecycle service.
"""

from utils.types import ChannelId


class NonceLedger:
    """
    Monotonic counter per channel id.

    ``advance`` is called each time a channel becomes a deletion candidate; a
    deferred deletion may only run if ``current`` still returns the value it
    captured. Values are never reset or reused while the process lives.
    """

    def __init__(self) -> None:
        self._nonces: dict[ChannelId, int] = {}

    def advance(self, channel_id: ChannelId) -> int:
        """Increment the nonce for ``channel_id`` and return the new value."""
        nonce = self._nonces.get(channel_id, 0) + 1
        self._nonces[channel_id] = nonce
        return nonce

    def current(self, channel_id: ChannelId) -> int:
        """Current nonce, 0 if the channel was never a candidate."""
        return self._nonces.get(channel_id, 0)

    def is_current(self, channel_id: ChannelId, nonce: int) -> bool:
        return self._nonces.get(channel_id) == nonce

    def __len__(self) -> int:
        return len(self._nonces)
