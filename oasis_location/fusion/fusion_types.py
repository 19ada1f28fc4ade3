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
Data types shared by the location fusion core
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable
from typing import Optional
from typing import Union


class Feed(Enum):
    """
    Identity of a location record's origin

    PRIMARY is the sparse high-precision feed (GPS-like), SECONDARY is the
    denser low-precision feed (network-like) and FUSED tags filter output.
    """

    PRIMARY = "primary"
    SECONDARY = "secondary"
    FUSED = "fused"


class FeedSelection(Enum):
    """
    Which raw feeds a session subscribes to
    """

    PRIMARY = "primary"
    SECONDARY = "secondary"
    BOTH = "both"

    def includes(self, feed: Feed) -> bool:
        if feed == Feed.PRIMARY:
            return self in (FeedSelection.PRIMARY, FeedSelection.BOTH)
        if feed == Feed.SECONDARY:
            return self in (FeedSelection.SECONDARY, FeedSelection.BOTH)
        return False


class Axis(Enum):
    LATITUDE = "latitude"
    LONGITUDE = "longitude"
    ALTITUDE = "altitude"


class FeedStatus(Enum):
    AVAILABLE = "available"
    TEMPORARILY_UNAVAILABLE = "temporarily_unavailable"
    OUT_OF_SERVICE = "out_of_service"
    ENABLED = "enabled"
    DISABLED = "disabled"


class InvalidMeasurementError(ValueError):
    """Raised when a measurement cannot be applied to the filters."""


@dataclass(frozen=True)
class Measurement:
    """
    Raw position fix reported by one feed

    Fields:
        feed: Originating feed
        latitude_deg: Latitude in degrees
        longitude_deg: Longitude in degrees
        accuracy_m: Reported horizontal accuracy in meters, expected > 0
        timestamp_ns: Fix time in nanoseconds since the Unix epoch
        altitude_m: Optional altitude in meters
        speed_mps: Optional ground speed in m/s
        bearing_deg: Optional bearing in degrees
    """

    feed: Feed
    latitude_deg: float
    longitude_deg: float
    accuracy_m: float
    timestamp_ns: int
    altitude_m: Optional[float] = None
    speed_mps: Optional[float] = None
    bearing_deg: Optional[float] = None

    @property
    def has_altitude(self) -> bool:
        return self.altitude_m is not None


@dataclass(frozen=True)
class Estimate:
    """
    Fused position emitted once per emission period

    Fields:
        latitude_deg: Filtered latitude in degrees
        longitude_deg: Filtered longitude in degrees
        accuracy_m: Accuracy heuristic in meters from the latitude filter
        timestamp_ns: Wall-clock emission time in nanoseconds
        elapsed_realtime_ns: Monotonic emission time in nanoseconds
        altitude_m: Filtered altitude, present once altitude was observed
        speed_mps: Speed passed through from the last known measurement
        bearing_deg: Bearing passed through from the last known measurement
        feed: Always Feed.FUSED
    """

    latitude_deg: float
    longitude_deg: float
    accuracy_m: float
    timestamp_ns: int
    elapsed_realtime_ns: int
    altitude_m: Optional[float] = None
    speed_mps: Optional[float] = None
    bearing_deg: Optional[float] = None
    feed: Feed = Feed.FUSED

    @property
    def has_altitude(self) -> bool:
        return self.altitude_m is not None


@dataclass(frozen=True)
class FeedStatusEvent:
    feed: Feed
    status: FeedStatus


# Records delivered on a client's output channel
LocationRecord = Union[Estimate, Measurement]

OutputCallback = Callable[[LocationRecord], None]
StatusCallback = Callable[[FeedStatusEvent], None]
