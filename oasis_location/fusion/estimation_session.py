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
Per-session predict/correct orchestration over the axis filters
"""

from __future__ import annotations

import logging
import math
from typing import Optional

from oasis_location.fusion.axis_filter import AxisFilter
from oasis_location.fusion.fusion_config import FusionParams
from oasis_location.fusion.fusion_types import Axis
from oasis_location.fusion.fusion_types import Estimate
from oasis_location.fusion.fusion_types import Feed
from oasis_location.fusion.fusion_types import InvalidMeasurementError
from oasis_location.fusion.fusion_types import Measurement
from oasis_location.fusion.noise_model import accuracy_to_meters
from oasis_location.fusion.noise_model import measurement_noise_std
from oasis_location.fusion.noise_model import process_noise_std


_LOG: logging.Logger = logging.getLogger(__name__)


class EstimationSession:
    """
    Fuses measurements from both feeds into one estimate per emission

    Measurements correct the axis filters they touch. Emission ticks predict
    every active filter once and compose an Estimate. Whenever two
    corrections arrive without an emission in between, an extra prediction
    is applied before the second one so the filter never commits to
    back-to-back raw fixes.

    Not thread safe: callers must serialize process_measurement() and
    process_tick().
    """

    def __init__(self, params: Optional[FusionParams] = None) -> None:
        self._params: FusionParams = params if params is not None else FusionParams()
        self._filters: dict[Axis, AxisFilter] = {}

        # True when the last state transition was a predict-and-emit
        self._predicted: bool = False

        self._last_known: Optional[Measurement] = None
        self._measurement_count: int = 0
        self._emission_count: int = 0

    @property
    def params(self) -> FusionParams:
        return self._params

    @property
    def predicted(self) -> bool:
        return self._predicted

    @property
    def last_known(self) -> Optional[Measurement]:
        return self._last_known

    @property
    def measurement_count(self) -> int:
        return self._measurement_count

    @property
    def emission_count(self) -> int:
        return self._emission_count

    def axis_filter(self, axis: Axis) -> Optional[AxisFilter]:
        return self._filters.get(axis)

    def active_axes(self) -> list[Axis]:
        return [axis for axis in Axis if axis in self._filters]

    def process_measurement(self, measurement: Measurement) -> bool:
        """Correct the filters with a raw measurement.

        Args:
            measurement: Reading from the primary or secondary feed

        Returns:
            True if this was the first measurement applied to the session

        Raises:
            InvalidMeasurementError: A value is not finite, the latitude is
                at or beyond a pole, the reading is itself an estimate, or
                the accuracy gives a noise variance that is zero or overflows.
                Filter state is left untouched.
        """

        readings: list[tuple[Axis, float, float]] = self._checked_readings(
            measurement
        )

        for axis, position, noise in readings:
            axis_filter: Optional[AxisFilter] = self._filters.get(axis)
            if axis_filter is None:
                axis_filter = AxisFilter(
                    self._params.time_step, process_noise_std(axis, self._params)
                )
                axis_filter.reset(position, 0.0, noise)
                self._filters[axis] = axis_filter
                _LOG.debug(f"Created {axis.value} filter at {position}")

            if not self._predicted:
                axis_filter.predict(0.0)

            axis_filter.update(position, noise)

        # Corrections always clear the flag, only emissions set it
        self._predicted = False

        self._update_last_known(measurement)

        self._measurement_count += 1
        return self._measurement_count == 1

    def process_tick(
        self, timestamp_ns: int, elapsed_realtime_ns: int
    ) -> Optional[Estimate]:
        """Predict every active filter once and compose an estimate.

        Args:
            timestamp_ns: Wall-clock emission time in nanoseconds
            elapsed_realtime_ns: Monotonic emission time in nanoseconds

        Returns:
            The estimate, or None if no measurement has been applied yet
        """

        latitude_filter: Optional[AxisFilter] = self._filters.get(Axis.LATITUDE)
        longitude_filter: Optional[AxisFilter] = self._filters.get(Axis.LONGITUDE)
        if latitude_filter is None or longitude_filter is None:
            return None

        for axis_filter in self._filters.values():
            axis_filter.predict(0.0)

        altitude_m: Optional[float] = None
        altitude_filter: Optional[AxisFilter] = self._filters.get(Axis.ALTITUDE)
        if altitude_filter is not None:
            altitude_m = altitude_filter.position()

        speed_mps: Optional[float] = None
        bearing_deg: Optional[float] = None
        if self._last_known is not None:
            speed_mps = self._last_known.speed_mps
            bearing_deg = self._last_known.bearing_deg

        estimate: Estimate = Estimate(
            latitude_deg=latitude_filter.position(),
            longitude_deg=longitude_filter.position(),
            accuracy_m=accuracy_to_meters(
                Axis.LATITUDE, latitude_filter.accuracy(), self._params
            ),
            timestamp_ns=int(timestamp_ns),
            elapsed_realtime_ns=int(elapsed_realtime_ns),
            altitude_m=altitude_m,
            speed_mps=speed_mps,
            bearing_deg=bearing_deg,
        )

        self._predicted = True
        self._emission_count += 1

        return estimate

    def _checked_accuracy(self, measurement: Measurement) -> float:
        values: list[tuple[str, Optional[float]]] = [
            ("latitude", measurement.latitude_deg),
            ("longitude", measurement.longitude_deg),
            ("altitude", measurement.altitude_m),
            ("accuracy", measurement.accuracy_m),
        ]
        for name, value in values:
            if value is not None and not math.isfinite(float(value)):
                raise InvalidMeasurementError(
                    f"Non-finite {name} in {measurement.feed.value} measurement"
                )

        # Longitude noise scales with cos(latitude), which must stay positive
        if abs(float(measurement.latitude_deg)) >= 90.0:
            raise InvalidMeasurementError(
                f"Latitude {measurement.latitude_deg} outside (-90, 90)"
            )

        if measurement.feed == Feed.FUSED:
            raise InvalidMeasurementError("Fused estimates cannot be fed back")

        accuracy_m: float = float(measurement.accuracy_m)
        if accuracy_m < self._params.min_accuracy_m:
            _LOG.warning(
                f"Accuracy {accuracy_m} m from {measurement.feed.value} feed "
                f"below {self._params.min_accuracy_m} m, using the minimum"
            )
            accuracy_m = self._params.min_accuracy_m

        return accuracy_m

    def _checked_readings(
        self, measurement: Measurement
    ) -> list[tuple[Axis, float, float]]:
        """Return (axis, position, noise sigma) for every axis the reading touches.

        Raises:
            InvalidMeasurementError: The reading fails validation, or an
                axis noise variance is not a positive finite number
        """

        accuracy_m: float = self._checked_accuracy(measurement)
        latitude: float = float(measurement.latitude_deg)

        positions: list[tuple[Axis, float]] = [
            (Axis.LATITUDE, latitude),
            (Axis.LONGITUDE, float(measurement.longitude_deg)),
        ]
        if measurement.altitude_m is not None:
            positions.append((Axis.ALTITUDE, float(measurement.altitude_m)))

        readings: list[tuple[Axis, float, float]] = []
        for axis, position in positions:
            noise: float = measurement_noise_std(
                axis, accuracy_m, latitude, self._params
            )

            # The filters work with the variance noise^2
            variance: float = noise * noise
            if not math.isfinite(variance) or variance <= 0.0:
                raise InvalidMeasurementError(
                    f"Accuracy {accuracy_m} m gives unusable {axis.value} noise "
                    f"{noise} in {measurement.feed.value} measurement"
                )

            readings.append((axis, position, noise))

        return readings

    def _update_last_known(self, measurement: Measurement) -> None:
        # The primary feed always wins. A secondary reading is kept only
        # until a primary reading arrives.
        if (
            measurement.feed == Feed.PRIMARY
            or self._last_known is None
            or self._last_known.feed == Feed.SECONDARY
        ):
            self._last_known = measurement
