################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Noise derivation for the per-axis location filters."""

from __future__ import annotations

import math

from oasis_location.fusion.fusion_config import FusionParams
from oasis_location.fusion.fusion_types import Axis


def measurement_noise_std(
    axis: Axis, accuracy_m: float, latitude_deg: float, params: FusionParams
) -> float:
    """Return the measurement noise sigma for an axis, in that axis' units.

    Latitude and longitude filters work in degrees, altitude in meters.
    Longitude noise shrinks by cos(latitude) since a degree of longitude
    covers less ground away from the equator.

    Args:
        axis: Axis the measurement is applied to
        accuracy_m: Reported accuracy in meters
        latitude_deg: Latitude of the measurement in degrees
        params: Filter tuning holding the unit conversion
    """

    if axis == Axis.LATITUDE:
        return accuracy_m * params.degrees_per_meter
    if axis == Axis.LONGITUDE:
        return (
            accuracy_m
            * math.cos(math.radians(latitude_deg))
            * params.degrees_per_meter
        )
    if axis == Axis.ALTITUDE:
        return accuracy_m
    raise ValueError(f"Unknown axis: {axis}")


def process_noise_std(axis: Axis, params: FusionParams) -> float:
    """Return the process noise sigma for an axis, in that axis' units."""

    if axis in (Axis.LATITUDE, Axis.LONGITUDE):
        return params.coordinate_noise_m * params.degrees_per_meter
    if axis == Axis.ALTITUDE:
        return params.altitude_noise_m
    raise ValueError(f"Unknown axis: {axis}")


def accuracy_to_meters(axis: Axis, accuracy: float, params: FusionParams) -> float:
    """Convert an axis filter accuracy back to meters."""

    if axis == Axis.LATITUDE:
        return accuracy * params.meters_per_degree
    if axis == Axis.ALTITUDE:
        return accuracy
    raise ValueError(f"No meter conversion for axis: {axis}")
