"""
Bidirectional voice channel <-> archive thread map owned by the relay service.
"""

from utils.types import ChannelId, ThreadId


class ChannelDirectory:
    """
    One voice channel maps to at most one archive thread and vice versa.

    Pure in-memory data structure; links live for the process lifetime.
    """

    def __init__(self) -> None:
        self._thread_by_channel: dict[ChannelId, ThreadId] = {}
        self._channel_by_thread: dict[ThreadId, ChannelId] = {}

    def link(self, channel_id: ChannelId, thread_id: ThreadId) -> None:
        """
        Record a link, replacing any previous link held by either side.

        Re-linking keeps the map unique in both directions: a stale partner
        of either id is dropped before the new pair is stored.
        """
        old_thread = self._thread_by_channel.pop(channel_id, None)
        if old_thread is not None:
            self._channel_by_thread.pop(old_thread, None)
        old_channel = self._channel_by_thread.pop(thread_id, None)
        if old_channel is not None:
            self._thread_by_channel.pop(old_channel, None)

        self._thread_by_channel[channel_id] = thread_id
        self._channel_by_thread[thread_id] = channel_id

    def thread_for(self, channel_id: ChannelId) -> ThreadId | None:
        return self._thread_by_channel.get(channel_id)

    def channel_for(self, thread_id: ThreadId) -> ChannelId | None:
        return self._channel_by_thread.get(thread_id)

    def __len__(self) -> int:
        return len(self._thread_by_channel)

    def __contains__(self, channel_id: object) -> bool:
        return channel_id in self._thread_by_channel
