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
Single-shot emission timer re-armed after every tick
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable
from typing import Optional


_LOG: logging.Logger = logging.getLogger(__name__)


class PeriodicScheduler:
    """
    Emission timer bound to an asyncio event loop

    The timer fires once per start() or reset(). The owner calls reset()
    after handling a tick, so the next tick is a full period after the end
    of processing and pending ticks never pile up.

    All methods must be called from the loop's thread.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        period_sec: float,
        on_tick: Callable[[], None],
    ) -> None:
        self._loop: asyncio.AbstractEventLoop = loop
        self._period_sec: float = max(0.0, float(period_sec))
        self._on_tick: Callable[[], None] = on_tick
        self._handle: Optional[asyncio.TimerHandle] = None
        self._started: bool = False
        self._cancelled: bool = False

    @property
    def period_sec(self) -> float:
        return self._period_sec

    @property
    def started(self) -> bool:
        return self._started

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        """Arm the timer for the first time, no-op if already started."""
        if self._started or self._cancelled:
            return

        self._started = True
        _LOG.debug(f"Starting emission timer with period {self._period_sec} s")
        self._schedule()

    def reset(self) -> None:
        """Drop any pending tick and arm a new one a full period from now."""
        if not self._started or self._cancelled:
            return

        self._clear()
        self._schedule()

    def cancel(self) -> None:
        """Stop the timer for good. A cancelled timer never fires."""
        self._cancelled = True
        self._clear()

    def _schedule(self) -> None:
        self._handle = self._loop.call_later(self._period_sec, self._fire)

    def _clear(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        if self._cancelled:
            return
        self._on_tick()
