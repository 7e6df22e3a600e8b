"""
StreamKeeper - Live-stream playback resilience core

Decides, independent of any screen or widget:
- Which playback state a session is in
- How to classify and react to media engine failures
- When to retry (single-flight exponential backoff)
- What the overlay should communicate (loading, paused, error, banner)
"""

__version__ = "1.0.0"
__license__ = "MIT"

from streamkeeper.config import get_config, load_config

__all__ = [
    "__version__",
    "get_config",
    "load_config",
]
