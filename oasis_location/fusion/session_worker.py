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
Event loop thread that serializes one session's measurements and ticks
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable
from typing import Optional

from oasis_location.feeds.feed_source import FeedListener
from oasis_location.fusion.estimation_session import EstimationSession
from oasis_location.fusion.fusion_config import FusionConfig
from oasis_location.fusion.fusion_types import Estimate
from oasis_location.fusion.fusion_types import FeedStatusEvent
from oasis_location.fusion.fusion_types import InvalidMeasurementError
from oasis_location.fusion.fusion_types import LocationRecord
from oasis_location.fusion.fusion_types import Measurement
from oasis_location.fusion.fusion_types import OutputCallback
from oasis_location.fusion.fusion_types import StatusCallback
from oasis_location.fusion.periodic_scheduler import PeriodicScheduler


_LOG: logging.Logger = logging.getLogger(__name__)


class SessionWorker(FeedListener):
    """
    Runs one EstimationSession on a private asyncio event loop

    Feeds post readings from any thread. Readings and emission ticks are
    handled one at a time on the loop thread. Output is handed to a
    single-thread executor so client callbacks run in order without
    blocking the loop.
    """

    def __init__(
        self,
        config: FusionConfig,
        output_callback: OutputCallback,
        status_callback: Optional[StatusCallback] = None,
        name: str = "fusion",
    ) -> None:
        # Construction parameters
        self._config: FusionConfig = config
        self._output_callback: OutputCallback = output_callback
        self._status_callback: Optional[StatusCallback] = status_callback
        self._name: str = name

        self._session: EstimationSession = EstimationSession(config.params)

        # Initialize asyncio event loop for running the session in a new thread
        self._loop: asyncio.AbstractEventLoop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._run_thread, name=f"{name}-worker", daemon=True
        )
        self._scheduler: PeriodicScheduler = PeriodicScheduler(
            self._loop, config.emission_interval_sec, self._handle_tick
        )

        # Client delivery
        self._delivery = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix=f"{name}-delivery"
        )

        self._lock = threading.Lock()
        self._started: bool = False
        self._closed: bool = False

    @property
    def name(self) -> str:
        return self._name

    @property
    def config(self) -> FusionConfig:
        return self._config

    @property
    def session(self) -> EstimationSession:
        """Return the session. Only inspect it once the worker is closed."""
        return self._session

    @property
    def scheduler(self) -> PeriodicScheduler:
        return self._scheduler

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> None:
        with self._lock:
            if self._started or self._closed:
                return
            self._started = True
        self._thread.start()
        _LOG.debug(f"Session worker {self._name} started")

    def close(self) -> bool:
        """Cancel the timer and stop the loop. Safe to call repeatedly.

        Returns:
            True if this call closed the worker, False if it was already closed
        """
        with self._lock:
            if self._closed:
                _LOG.debug(f"Session worker {self._name} already closed")
                return False
            self._closed = True
            started: bool = self._started

        if started:
            self._loop.call_soon_threadsafe(self._shutdown)
            if threading.current_thread() is not self._thread:
                self._thread.join()
        if not self._loop.is_running():
            self._loop.close()

        # Deliveries already queued still reach the client
        self._delivery.shutdown(wait=False)

        _LOG.debug(f"Session worker {self._name} closed")
        return True

    def on_measurement(self, measurement: Measurement) -> None:
        self._post(self._handle_measurement, measurement)

    def on_status(self, event: FeedStatusEvent) -> None:
        self._post(self._handle_status, event)

    def _post(self, handler: Callable[..., None], *args: object) -> None:
        with self._lock:
            if self._closed or not self._started:
                _LOG.debug(f"Session worker {self._name} not running, dropping event")
                return
            self._loop.call_soon_threadsafe(handler, *args)

    def _run_thread(self) -> None:
        """Run the asyncio event loop in a thread to process session events"""
        asyncio.set_event_loop(self._loop)
        self._loop.run_forever()

    def _shutdown(self) -> None:
        self._scheduler.cancel()
        self._loop.stop()

    def _handle_measurement(self, measurement: Measurement) -> None:
        try:
            first: bool = self._session.process_measurement(measurement)
        except InvalidMeasurementError as err:
            _LOG.warning(f"Session {self._name} dropped measurement: {err}")
            return

        if self._config.forward_raw_measurements:
            self._deliver(self._output_callback, measurement)

        # Enable the emission timer on the first measurement
        if first:
            self._scheduler.start()

    def _handle_status(self, event: FeedStatusEvent) -> None:
        if self._status_callback is not None:
            self._deliver(self._status_callback, event)

    def _handle_tick(self) -> None:
        estimate: Optional[Estimate] = self._session.process_tick(
            time.time_ns(), time.monotonic_ns()
        )
        if estimate is not None:
            self._deliver(self._output_callback, estimate)

        # Enqueue next prediction
        self._scheduler.reset()

    def _deliver(
        self,
        callback: Callable[..., None],
        record: LocationRecord | FeedStatusEvent,
    ) -> None:
        self._delivery.submit(self._invoke, callback, record)

    def _invoke(
        self,
        callback: Callable[..., None],
        record: LocationRecord | FeedStatusEvent,
    ) -> None:
        try:
            callback(record)
        except Exception:
            _LOG.exception(f"Client callback of session {self._name} raised")
