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
Configuration data for location fusion sessions
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Any
from typing import Mapping
from typing import Union

import yaml

from oasis_location.fusion.fusion_types import FeedSelection


_LOG: logging.Logger = logging.getLogger(__name__)


# Ground distance covered by one degree of latitude, in meters
METERS_PER_DEGREE: float = 111225.0

# Nominal filter time step, applied to every predict and update
DEFAULT_TIME_STEP: float = 1.0

# Process noise sigma for latitude and longitude, in meters
DEFAULT_COORDINATE_NOISE_M: float = 4.0

# Process noise sigma for altitude, in meters
DEFAULT_ALTITUDE_NOISE_M: float = 10.0

# Accuracy substituted for zero or negative reported accuracy, in meters
DEFAULT_MIN_ACCURACY_M: float = 0.1


class FusionConfigError(ValueError):
    """Raised when fusion configuration validation fails."""


@dataclass(frozen=True)
class FusionParams:
    """
    Filter tuning shared by every axis of a session

    Fields:
        time_step: Nominal time step of every predict/update, > 0
        coordinate_noise_m: Latitude/longitude process noise sigma in meters
        altitude_noise_m: Altitude process noise sigma in meters
        meters_per_degree: Meters per degree of latitude
        min_accuracy_m: Floor applied to non-positive reported accuracy
    """

    time_step: float = DEFAULT_TIME_STEP
    coordinate_noise_m: float = DEFAULT_COORDINATE_NOISE_M
    altitude_noise_m: float = DEFAULT_ALTITUDE_NOISE_M
    meters_per_degree: float = METERS_PER_DEGREE
    min_accuracy_m: float = DEFAULT_MIN_ACCURACY_M

    def __post_init__(self) -> None:
        for name in (
            "time_step",
            "coordinate_noise_m",
            "altitude_noise_m",
            "meters_per_degree",
            "min_accuracy_m",
        ):
            value: float = _require_float(getattr(self, name), name)
            if value <= 0.0:
                raise FusionConfigError(f"{name} must be positive")
            object.__setattr__(self, name, value)

    @property
    def degrees_per_meter(self) -> float:
        return 1.0 / self.meters_per_degree

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> FusionParams:
        return cls(**_known_keys(cls, values))

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class FusionConfig:
    """
    Options recognized when starting a session

    Fields:
        use_feeds: Raw feeds the session subscribes to
        emission_interval_ms: Period between estimates, 0 for as fast as
            possible
        primary_min_interval_ms: Minimum spacing of primary feed readings
        secondary_min_interval_ms: Minimum spacing of secondary feed readings
        forward_raw_measurements: Also deliver raw readings on the output
            channel
        params: Filter tuning

    Negative intervals are clamped to zero with a warning.
    """

    use_feeds: FeedSelection = FeedSelection.BOTH
    emission_interval_ms: int = 1000
    primary_min_interval_ms: int = 1000
    secondary_min_interval_ms: int = 5000
    forward_raw_measurements: bool = False
    params: FusionParams = field(default_factory=FusionParams)

    def __post_init__(self) -> None:
        if self.use_feeds is None:
            raise FusionConfigError("use_feeds must be set")
        if not isinstance(self.use_feeds, FeedSelection):
            object.__setattr__(self, "use_feeds", _parse_selection(self.use_feeds))

        for name in (
            "emission_interval_ms",
            "primary_min_interval_ms",
            "secondary_min_interval_ms",
        ):
            interval: float = _require_float(getattr(self, name), name)
            if not interval.is_integer():
                raise FusionConfigError(
                    f"{name} must be a whole number of milliseconds: {interval}"
                )
            if interval < 0:
                _LOG.warning(f"{name} < 0 ({interval}), setting to 0")
                interval = 0
            object.__setattr__(self, name, int(interval))

        if not isinstance(self.forward_raw_measurements, bool):
            raise FusionConfigError("forward_raw_measurements must be a bool")
        if isinstance(self.params, Mapping):
            object.__setattr__(self, "params", FusionParams.from_dict(self.params))
        elif not isinstance(self.params, FusionParams):
            raise FusionConfigError("params must be FusionParams or a mapping")

    @property
    def emission_interval_sec(self) -> float:
        return self.emission_interval_ms / 1000.0

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> FusionConfig:
        """Construct a configuration from a mapping, e.g. parsed YAML."""
        if not isinstance(values, Mapping):
            raise FusionConfigError("configuration must be a mapping")
        return cls(**_known_keys(cls, values))

    def as_dict(self) -> dict[str, Any]:
        return {
            "use_feeds": self.use_feeds.value,
            "emission_interval_ms": self.emission_interval_ms,
            "primary_min_interval_ms": self.primary_min_interval_ms,
            "secondary_min_interval_ms": self.secondary_min_interval_ms,
            "forward_raw_measurements": self.forward_raw_measurements,
            "params": self.params.as_dict(),
        }


def load_fusion_config(path: Union[str, Path]) -> FusionConfig:
    """Load a FusionConfig from a YAML file."""
    config_path: Path = Path(path)
    try:
        text: str = config_path.read_text(encoding="utf-8")
    except OSError as err:
        raise FusionConfigError(f"Unable to read {config_path}: {err}") from err
    return loads_fusion_config(text)


def loads_fusion_config(text: str) -> FusionConfig:
    """Parse a FusionConfig from YAML text."""
    try:
        data: Any = yaml.safe_load(text)
    except yaml.YAMLError as err:
        raise FusionConfigError(f"Invalid YAML: {err}") from err
    if data is None:
        data = {}
    return FusionConfig.from_dict(data)


def dumps_fusion_config(config: FusionConfig) -> str:
    return yaml.safe_dump(config.as_dict(), sort_keys=False)


def _parse_selection(value: Any) -> FeedSelection:
    if isinstance(value, str):
        try:
            return FeedSelection(value.strip().lower())
        except ValueError:
            pass
    raise FusionConfigError(f"use_feeds must be primary, secondary or both: {value}")


def _require_float(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise FusionConfigError(f"{name} must be a number")
    result: float = float(value)
    if not math.isfinite(result):
        raise FusionConfigError(f"{name} must be finite")
    return result


def _known_keys(cls: type, values: Mapping[str, Any]) -> dict[str, Any]:
    allowed: set[str] = set(cls.__dataclass_fields__)  # type: ignore[attr-defined]
    unknown: set[str] = set(values) - allowed
    if unknown:
        raise FusionConfigError(f"Unknown configuration keys: {sorted(unknown)}")
    return dict(values)
