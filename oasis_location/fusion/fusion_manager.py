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
Session lifecycle and registry for location fusion clients
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Iterable
from typing import Optional

from oasis_location.feeds.feed_source import FeedSource
from oasis_location.fusion.fusion_config import FusionConfig
from oasis_location.fusion.fusion_config import FusionConfigError
from oasis_location.fusion.fusion_types import Feed
from oasis_location.fusion.fusion_types import OutputCallback
from oasis_location.fusion.fusion_types import StatusCallback
from oasis_location.fusion.session_worker import SessionWorker


_LOG: logging.Logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionHandle:
    """Opaque identifier returned by FusionManager.start()."""

    session_id: int


@dataclass
class _SessionEntry:
    worker: SessionWorker
    output_callback: OutputCallback
    sources: list[FeedSource]


class FusionManager:
    """
    Starts and stops fusion sessions on behalf of clients

    Each session gets its own worker and subscribes to the feeds selected in
    its configuration. Registering an output callback that is already in use
    stops the session it belonged to first.
    """

    def __init__(self, sources: Iterable[FeedSource]) -> None:
        self._sources: dict[Feed, FeedSource] = {}
        for source in sources:
            if source.feed == Feed.FUSED:
                raise FusionConfigError("Fused output cannot be used as a feed")
            if source.feed in self._sources:
                raise FusionConfigError(f"Duplicate {source.feed.value} feed source")
            self._sources[source.feed] = source

        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._entries: dict[SessionHandle, _SessionEntry] = {}

    def start(
        self,
        config: FusionConfig,
        output_callback: OutputCallback,
        status_callback: Optional[StatusCallback] = None,
    ) -> SessionHandle:
        """
        Register for fused estimates.

        :param config: Session options, see FusionConfig
        :param output_callback: Receives every Estimate, and raw Measurements
            when forward_raw_measurements is set
        :param status_callback: Optional receiver of feed status changes

        :return: Handle to pass to stop()

        :raises FusionConfigError: if an argument is missing or a selected
            feed has no source
        """
        if config is None:
            raise FusionConfigError("config can't be None")
        if config.use_feeds is None:
            raise FusionConfigError("use_feeds can't be None")
        if output_callback is None or not callable(output_callback):
            raise FusionConfigError("output_callback must be callable")
        if status_callback is not None and not callable(status_callback):
            raise FusionConfigError("status_callback must be callable")

        selected: list[tuple[FeedSource, int]] = []
        for feed, min_interval_ms in (
            (Feed.PRIMARY, config.primary_min_interval_ms),
            (Feed.SECONDARY, config.secondary_min_interval_ms),
        ):
            if not config.use_feeds.includes(feed):
                continue
            source: Optional[FeedSource] = self._sources.get(feed)
            if source is None:
                raise FusionConfigError(f"No source for the {feed.value} feed")
            selected.append((source, min_interval_ms))

        # Remove this callback if it is already in use
        previous: Optional[SessionHandle] = self._find_handle(output_callback)
        if previous is not None:
            _LOG.debug("Output callback already in use, stopping its session")
            self.stop(previous)

        handle: SessionHandle = SessionHandle(session_id=next(self._ids))
        worker: SessionWorker = SessionWorker(
            config,
            output_callback,
            status_callback,
            name=f"fusion-{handle.session_id}",
        )
        worker.start()

        entry: _SessionEntry = _SessionEntry(
            worker=worker,
            output_callback=output_callback,
            sources=[source for source, _ in selected],
        )
        with self._lock:
            self._entries[handle] = entry

        for source, min_interval_ms in selected:
            source.subscribe(worker, min_interval_ms)

        _LOG.info(
            f"Started session {handle.session_id} using {config.use_feeds.value} "
            f"feeds, emitting every {config.emission_interval_ms} ms"
        )

        return handle

    def stop(self, handle: SessionHandle) -> bool:
        """
        Stop a session. Unknown or already stopped handles are ignored.

        :return: True if a session was stopped
        """
        with self._lock:
            entry: Optional[_SessionEntry] = self._entries.pop(handle, None)

        if entry is None:
            _LOG.debug(f"Session {handle} is not registered, nothing to stop")
            return False

        for source in entry.sources:
            source.unsubscribe(entry.worker)
        entry.worker.close()

        _LOG.info(f"Stopped session {handle.session_id}")
        return True

    def stop_callback(self, output_callback: OutputCallback) -> bool:
        """Stop the session the given output callback is registered with."""
        handle: Optional[SessionHandle] = self._find_handle(output_callback)
        if handle is None:
            _LOG.debug("Output callback is not registered, nothing to stop")
            return False
        return self.stop(handle)

    def close(self) -> None:
        """Stop every session."""
        for handle in self.sessions():
            self.stop(handle)

    def sessions(self) -> list[SessionHandle]:
        with self._lock:
            return list(self._entries)

    def worker(self, handle: SessionHandle) -> Optional[SessionWorker]:
        with self._lock:
            entry: Optional[_SessionEntry] = self._entries.get(handle)
        return entry.worker if entry is not None else None

    def _find_handle(self, output_callback: OutputCallback) -> Optional[SessionHandle]:
        with self._lock:
            for handle, entry in self._entries.items():
                if entry.output_callback == output_callback:
                    return handle
        return None
