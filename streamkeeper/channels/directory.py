"""
Ordered channel directory with wrap-around navigation.
"""

import logging
from typing import Any, Iterable, Optional, Protocol

from streamkeeper.playback.targets import Target

logger = logging.getLogger(__name__)


class ChannelDirectory(Protocol):
    """Lookup interface for the ordered channel list."""

    def get_default_target(self) -> Target: ...

    def get_target_by_id(self, channel_id: str) -> Optional[Target]: ...

    def get_next_target(self, current_id: str) -> Optional[Target]: ...

    def get_previous_target(self, current_id: str) -> Optional[Target]: ...

    def get_all_targets(self) -> list[Target]: ...


class InMemoryChannelDirectory:
    """
    Channel directory backed by an ordered list.

    Next/previous wrap around at either end; unknown ids yield None.
    """

    def __init__(self, targets: Iterable[Target]):
        self._targets = list(targets)
        if not self._targets:
            raise ValueError("Channel directory requires at least one channel")

        self._index = {t.id: i for i, t in enumerate(self._targets)}
        if len(self._index) != len(self._targets):
            raise ValueError("Channel ids must be unique")

    @classmethod
    def from_config(cls, channels: Iterable[Any]) -> "InMemoryChannelDirectory":
        """Build from `channels:` config entries."""
        directory = cls(
            Target(
                id=channel.id,
                uri=channel.stream_url,
                name=channel.name,
                is_default=channel.is_default,
            )
            for channel in channels
        )
        logger.info(f"Channel directory loaded: {len(directory)} channel(s)")
        return directory

    def __len__(self) -> int:
        return len(self._targets)

    def get_default_target(self) -> Target:
        for target in self._targets:
            if target.is_default:
                return target
        return self._targets[0]

    def get_target_by_id(self, channel_id: str) -> Optional[Target]:
        index = self._index.get(channel_id)
        return self._targets[index] if index is not None else None

    def get_all_targets(self) -> list[Target]:
        return list(self._targets)

    def get_next_target(self, current_id: str) -> Optional[Target]:
        index = self._index.get(current_id)
        if index is None:
            return None
        return self._targets[(index + 1) % len(self._targets)]

    def get_previous_target(self, current_id: str) -> Optional[Target]:
        index = self._index.get(current_id)
        if index is None:
            return None
        return self._targets[(index - 1) % len(self._targets)]
