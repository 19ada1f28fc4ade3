################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""
Interfaces between raw location feeds and fusion sessions
"""

from __future__ import annotations

import abc
import logging
import threading
from typing import Optional
from typing import Protocol

from oasis_location.fusion.fusion_types import Feed
from oasis_location.fusion.fusion_types import FeedStatus
from oasis_location.fusion.fusion_types import FeedStatusEvent
from oasis_location.fusion.fusion_types import Measurement


_LOG: logging.Logger = logging.getLogger(__name__)

# Nanoseconds per millisecond for interval throttling
_NS_PER_MS: int = 1_000_000


class FeedListener:
    @abc.abstractmethod
    def on_measurement(self, measurement: Measurement) -> None:
        """
        Handle a raw reading. May be called from any thread.
        """
        pass

    @abc.abstractmethod
    def on_status(self, event: FeedStatusEvent) -> None:
        """
        Handle a feed status change. May be called from any thread.
        """
        pass


class FeedSource(Protocol):
    @property
    def feed(self) -> Feed: ...

    def subscribe(self, listener: FeedListener, min_interval_ms: int) -> None: ...

    def unsubscribe(self, listener: FeedListener) -> None: ...


class _Subscription:
    def __init__(self, min_interval_ms: int) -> None:
        self.min_interval_ns: int = max(0, int(min_interval_ms)) * _NS_PER_MS
        self.last_timestamp_ns: Optional[int] = None


class PushFeedSource:
    """
    In-process feed that fans pushed readings out to its subscribers

    Each subscriber gets at most one reading per min_interval_ms, measured
    on the readings' own timestamps.
    """

    def __init__(self, feed: Feed) -> None:
        if feed == Feed.FUSED:
            raise ValueError("A raw feed cannot carry fused estimates")

        self._feed: Feed = feed
        self._lock = threading.Lock()
        self._subscriptions: dict[FeedListener, _Subscription] = {}

    @property
    def feed(self) -> Feed:
        return self._feed

    def subscribe(self, listener: FeedListener, min_interval_ms: int) -> None:
        with self._lock:
            self._subscriptions[listener] = _Subscription(min_interval_ms)
        _LOG.debug(
            f"Subscribed listener to {self._feed.value} feed "
            f"every {min_interval_ms} ms"
        )

    def unsubscribe(self, listener: FeedListener) -> None:
        with self._lock:
            removed: Optional[_Subscription] = self._subscriptions.pop(listener, None)
        if removed is None:
            _LOG.debug(f"Listener was not subscribed to {self._feed.value} feed")

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def push(self, measurement: Measurement) -> int:
        """Deliver a reading to subscribers.

        Returns:
            The number of listeners the reading was delivered to
        """
        if measurement.feed != self._feed:
            raise ValueError(
                f"{measurement.feed.value} reading pushed to {self._feed.value} feed"
            )

        recipients: list[FeedListener] = []
        with self._lock:
            for listener, subscription in self._subscriptions.items():
                last_ns: Optional[int] = subscription.last_timestamp_ns
                if last_ns is not None:
                    delta_ns: int = measurement.timestamp_ns - last_ns

                    # A clock that steps backwards restarts the interval
                    if 0 <= delta_ns < subscription.min_interval_ns:
                        continue
                subscription.last_timestamp_ns = measurement.timestamp_ns
                recipients.append(listener)

        for listener in recipients:
            listener.on_measurement(measurement)

        return len(recipients)

    def push_status(self, status: FeedStatus) -> None:
        event: FeedStatusEvent = FeedStatusEvent(feed=self._feed, status=status)
        with self._lock:
            recipients: list[FeedListener] = list(self._subscriptions)
        for listener in recipients:
            listener.on_status(event)
