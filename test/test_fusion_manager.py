################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Tests for session registration and teardown."""

from __future__ import annotations

import threading
import time
from typing import Any
from typing import Iterator
from typing import Optional

import pytest

from oasis_location.feeds.feed_source import PushFeedSource
from oasis_location.fusion.fusion_config import FusionConfig
from oasis_location.fusion.fusion_config import FusionConfigError
from oasis_location.fusion.fusion_manager import FusionManager
from oasis_location.fusion.fusion_manager import SessionHandle
from oasis_location.fusion.fusion_types import Estimate
from oasis_location.fusion.fusion_types import Feed
from oasis_location.fusion.fusion_types import FeedSelection
from oasis_location.fusion.fusion_types import FeedStatus
from oasis_location.fusion.fusion_types import FeedStatusEvent
from oasis_location.fusion.fusion_types import LocationRecord
from oasis_location.fusion.fusion_types import Measurement
from oasis_location.fusion.session_worker import SessionWorker


_TIMEOUT_SEC: float = 5.0


class _Client:
    def __init__(self) -> None:
        self.records: list[LocationRecord] = []
        self.events: list[FeedStatusEvent] = []
        self.estimate_ready = threading.Event()
        self.status_ready = threading.Event()

    def on_record(self, record: LocationRecord) -> None:
        self.records.append(record)
        if isinstance(record, Estimate):
            self.estimate_ready.set()

    def on_status(self, event: FeedStatusEvent) -> None:
        self.events.append(event)
        self.status_ready.set()


@pytest.fixture
def primary() -> PushFeedSource:
    return PushFeedSource(Feed.PRIMARY)


@pytest.fixture
def secondary() -> PushFeedSource:
    return PushFeedSource(Feed.SECONDARY)


@pytest.fixture
def manager(
    primary: PushFeedSource, secondary: PushFeedSource
) -> Iterator[FusionManager]:
    fusion_manager: FusionManager = FusionManager([primary, secondary])
    yield fusion_manager
    fusion_manager.close()


def _config(**overrides: Any) -> FusionConfig:
    values: dict[str, Any] = {
        "emission_interval_ms": 10,
        "primary_min_interval_ms": 0,
        "secondary_min_interval_ms": 0,
    }
    values.update(overrides)
    return FusionConfig(**values)


def _reading(feed: Feed) -> Measurement:
    return Measurement(
        feed=feed,
        latitude_deg=51.5,
        longitude_deg=-0.1,
        accuracy_m=10.0,
        timestamp_ns=time.time_ns(),
    )


def test_start_subscribes_selected_feeds(
    manager: FusionManager, primary: PushFeedSource, secondary: PushFeedSource
) -> None:
    client: _Client = _Client()

    handle: SessionHandle = manager.start(
        _config(use_feeds=FeedSelection.PRIMARY), client.on_record
    )

    assert manager.sessions() == [handle]
    assert primary.subscriber_count() == 1
    assert secondary.subscriber_count() == 0


def test_start_both_feeds(
    manager: FusionManager, primary: PushFeedSource, secondary: PushFeedSource
) -> None:
    client: _Client = _Client()

    manager.start(_config(), client.on_record)

    assert primary.subscriber_count() == 1
    assert secondary.subscriber_count() == 1


def test_estimates_reach_the_client(
    manager: FusionManager, primary: PushFeedSource
) -> None:
    client: _Client = _Client()
    manager.start(_config(), client.on_record)

    assert primary.push(_reading(Feed.PRIMARY)) == 1
    assert client.estimate_ready.wait(_TIMEOUT_SEC)

    estimate: Estimate = next(r for r in client.records if isinstance(r, Estimate))
    assert estimate.feed == Feed.FUSED
    assert estimate.latitude_deg == pytest.approx(51.5)
    assert estimate.longitude_deg == pytest.approx(-0.1)


def test_secondary_feed_alone_produces_estimates(
    manager: FusionManager, secondary: PushFeedSource
) -> None:
    client: _Client = _Client()
    manager.start(_config(use_feeds="secondary"), client.on_record)

    secondary.push(_reading(Feed.SECONDARY))

    assert client.estimate_ready.wait(_TIMEOUT_SEC)


def test_status_changes_are_forwarded(
    manager: FusionManager, secondary: PushFeedSource
) -> None:
    client: _Client = _Client()
    manager.start(_config(), client.on_record, client.on_status)

    secondary.push_status(FeedStatus.DISABLED)

    assert client.status_ready.wait(_TIMEOUT_SEC)
    assert client.events == [
        FeedStatusEvent(feed=Feed.SECONDARY, status=FeedStatus.DISABLED)
    ]


def test_stop_unsubscribes_and_closes_worker(
    manager: FusionManager, primary: PushFeedSource, secondary: PushFeedSource
) -> None:
    client: _Client = _Client()
    handle: SessionHandle = manager.start(_config(), client.on_record)
    worker: Optional[SessionWorker] = manager.worker(handle)
    assert worker is not None

    assert manager.stop(handle)
    assert not manager.stop(handle)

    assert worker.closed
    assert manager.sessions() == []
    assert manager.worker(handle) is None
    assert primary.subscriber_count() == 0
    assert secondary.subscriber_count() == 0
    assert primary.push(_reading(Feed.PRIMARY)) == 0


def test_stop_unknown_handle_is_ignored(manager: FusionManager) -> None:
    assert not manager.stop(SessionHandle(session_id=999))


def test_reusing_a_callback_replaces_its_session(
    manager: FusionManager, primary: PushFeedSource
) -> None:
    client: _Client = _Client()

    first: SessionHandle = manager.start(_config(), client.on_record)
    first_worker: Optional[SessionWorker] = manager.worker(first)
    second: SessionHandle = manager.start(_config(), client.on_record)

    assert first != second
    assert manager.sessions() == [second]
    assert first_worker is not None and first_worker.closed
    assert primary.subscriber_count() == 1


def test_stop_by_callback(manager: FusionManager, primary: PushFeedSource) -> None:
    client: _Client = _Client()
    other: _Client = _Client()

    manager.start(_config(), client.on_record)
    kept: SessionHandle = manager.start(_config(), other.on_record)

    assert manager.stop_callback(client.on_record)
    assert not manager.stop_callback(client.on_record)
    assert manager.sessions() == [kept]
    assert primary.subscriber_count() == 1


def test_close_stops_every_session(
    manager: FusionManager, primary: PushFeedSource
) -> None:
    manager.start(_config(), _Client().on_record)
    manager.start(_config(), _Client().on_record)

    manager.close()

    assert manager.sessions() == []
    assert primary.subscriber_count() == 0


def test_start_rejects_missing_arguments(manager: FusionManager) -> None:
    client: _Client = _Client()

    with pytest.raises(FusionConfigError):
        manager.start(None, client.on_record)  # type: ignore[arg-type]
    with pytest.raises(FusionConfigError):
        manager.start(_config(), None)  # type: ignore[arg-type]
    with pytest.raises(FusionConfigError):
        manager.start(_config(), client.on_record, "status")  # type: ignore[arg-type]

    assert manager.sessions() == []


def test_start_requires_a_source_per_selected_feed(
    primary: PushFeedSource,
) -> None:
    fusion_manager: FusionManager = FusionManager([primary])

    with pytest.raises(FusionConfigError):
        fusion_manager.start(_config(), _Client().on_record)

    assert fusion_manager.sessions() == []
    assert primary.subscriber_count() == 0


def test_sources_must_be_distinct_raw_feeds(primary: PushFeedSource) -> None:
    with pytest.raises(FusionConfigError):
        FusionManager([primary, PushFeedSource(Feed.PRIMARY)])
