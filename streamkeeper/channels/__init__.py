"""
StreamKeeper Channels Module

Ordered channel lookups used for channel up/down and direct switching.
"""

from streamkeeper.channels.directory import ChannelDirectory, InMemoryChannelDirectory

__all__ = [
    "ChannelDirectory",
    "InMemoryChannelDirectory",
]
