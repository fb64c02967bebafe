"""Realtime package: change feed and per-viewer live sessions."""

from gylde.infrastructure.realtime.change_feed import (
    ChangeFeed,
    Topic,
    get_change_feed,
)
from gylde.infrastructure.realtime.viewer_session import ViewerSession

__all__ = ["ChangeFeed", "Topic", "get_change_feed", "ViewerSession"]
