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
Entry point that fuses simulated primary and secondary feeds
"""

from __future__ import annotations

import argparse
import logging
import time
from dataclasses import replace
from typing import Optional

import numpy as np

from oasis_location.feeds.feed_source import PushFeedSource
from oasis_location.fusion.fusion_config import FusionConfig
from oasis_location.fusion.fusion_config import load_fusion_config
from oasis_location.fusion.fusion_manager import FusionManager
from oasis_location.fusion.fusion_manager import SessionHandle
from oasis_location.fusion.fusion_types import Feed
from oasis_location.fusion.fusion_types import FeedStatus
from oasis_location.fusion.fusion_types import FeedStatusEvent
from oasis_location.fusion.fusion_types import LocationRecord
from oasis_location.fusion.fusion_types import Measurement


_LOG: logging.Logger = logging.getLogger(__name__)


################################################################################
# Simulation
################################################################################


class _Track:
    """Straight-line walk north-east from a start point."""

    def __init__(
        self, latitude_deg: float, longitude_deg: float, speed_mps: float
    ) -> None:
        self._latitude_deg: float = latitude_deg
        self._longitude_deg: float = longitude_deg
        self._speed_mps: float = speed_mps

    def position(
        self, elapsed_sec: float, meters_per_degree: float
    ) -> tuple[float, float]:
        step_m: float = self._speed_mps * elapsed_sec / np.sqrt(2.0)
        latitude: float = self._latitude_deg + step_m / meters_per_degree
        longitude: float = self._longitude_deg + step_m / (
            meters_per_degree * np.cos(np.radians(self._latitude_deg))
        )
        return latitude, longitude


def _reading(
    feed: Feed,
    track: _Track,
    elapsed_sec: float,
    accuracy_m: float,
    rng: np.random.Generator,
    config: FusionConfig,
    speed_mps: float,
) -> Measurement:
    latitude, longitude = track.position(elapsed_sec, config.params.meters_per_degree)
    noise_deg: np.ndarray = (
        rng.normal(0.0, accuracy_m, size=2) / config.params.meters_per_degree
    )
    return Measurement(
        feed=feed,
        latitude_deg=latitude + float(noise_deg[0]),
        longitude_deg=longitude + float(noise_deg[1]),
        accuracy_m=accuracy_m,
        timestamp_ns=time.time_ns(),
        altitude_m=float(100.0 + rng.normal(0.0, accuracy_m)),
        speed_mps=speed_mps if feed == Feed.PRIMARY else None,
        bearing_deg=45.0 if feed == Feed.PRIMARY else None,
    )


################################################################################
# Entry point
################################################################################


def _parse_args(args: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Fuse simulated primary and secondary location feeds"
    )
    parser.add_argument("--config", help="YAML file with session options")
    parser.add_argument(
        "--duration", type=float, default=10.0, help="Seconds to simulate"
    )
    parser.add_argument(
        "--emission-ms", type=int, help="Override the emission interval"
    )
    parser.add_argument(
        "--speed", type=float, default=1.4, help="Walking speed in m/s"
    )
    parser.add_argument("--seed", type=int, default=0, help="Noise seed")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    options, _ = parser.parse_known_args(args=args)
    return options


def main(args: Optional[list[str]] = None) -> None:
    options = _parse_args(args=args)

    logging.basicConfig(
        level=logging.DEBUG if options.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config: FusionConfig = (
        load_fusion_config(options.config) if options.config else FusionConfig()
    )
    if options.emission_ms is not None:
        config = replace(config, emission_interval_ms=options.emission_ms)

    primary: PushFeedSource = PushFeedSource(Feed.PRIMARY)
    secondary: PushFeedSource = PushFeedSource(Feed.SECONDARY)
    manager: FusionManager = FusionManager([primary, secondary])

    def on_location(record: LocationRecord) -> None:
        _LOG.info(
            f"{record.feed.value:>9}: {record.latitude_deg:.7f}, "
            f"{record.longitude_deg:.7f} +/- {record.accuracy_m:.1f} m"
        )

    def on_status(event: FeedStatusEvent) -> None:
        _LOG.info(f"Feed {event.feed.value} status: {event.status.value}")

    handle: SessionHandle = manager.start(config, on_location, on_status)

    rng: np.random.Generator = np.random.default_rng(options.seed)
    track: _Track = _Track(48.8584, 2.2945, options.speed)

    primary.push_status(FeedStatus.ENABLED)
    secondary.push_status(FeedStatus.ENABLED)

    start: float = time.monotonic()
    try:
        while True:
            elapsed: float = time.monotonic() - start
            if elapsed >= options.duration:
                break
            primary.push(
                _reading(Feed.PRIMARY, track, elapsed, 5.0, rng, config, options.speed)
            )
            secondary.push(
                _reading(Feed.SECONDARY, track, elapsed, 40.0, rng, config, options.speed)
            )
            time.sleep(0.1)
    except KeyboardInterrupt:
        pass
    finally:
        manager.stop(handle)
        manager.close()
