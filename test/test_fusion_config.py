################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Tests for fusion configuration parsing and validation."""

from __future__ import annotations

import logging
import math
from pathlib import Path

import pytest

from oasis_location.fusion.fusion_config import METERS_PER_DEGREE
from oasis_location.fusion.fusion_config import FusionConfig
from oasis_location.fusion.fusion_config import FusionConfigError
from oasis_location.fusion.fusion_config import FusionParams
from oasis_location.fusion.fusion_config import dumps_fusion_config
from oasis_location.fusion.fusion_config import load_fusion_config
from oasis_location.fusion.fusion_config import loads_fusion_config
from oasis_location.fusion.fusion_types import FeedSelection


_EXAMPLE_CONFIG: Path = Path(__file__).resolve().parents[1] / "config" / "fusion.yaml"


def test_defaults() -> None:
    config: FusionConfig = FusionConfig()

    assert config.use_feeds == FeedSelection.BOTH
    assert config.emission_interval_ms == 1000
    assert config.primary_min_interval_ms == 1000
    assert config.secondary_min_interval_ms == 5000
    assert config.forward_raw_measurements is False
    assert config.emission_interval_sec == 1.0
    assert config.params.time_step == 1.0
    assert config.params.coordinate_noise_m == 4.0
    assert config.params.altitude_noise_m == 10.0
    assert config.params.meters_per_degree == METERS_PER_DEGREE
    assert math.isclose(config.params.degrees_per_meter, 1.0 / 111225.0)


def test_negative_intervals_are_clamped(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        config: FusionConfig = FusionConfig(
            emission_interval_ms=-5, secondary_min_interval_ms=-1
        )

    assert config.emission_interval_ms == 0
    assert config.secondary_min_interval_ms == 0
    assert config.primary_min_interval_ms == 1000
    assert "emission_interval_ms < 0" in caplog.text
    assert "secondary_min_interval_ms < 0" in caplog.text


def test_feed_selection_parses_strings() -> None:
    assert FusionConfig(use_feeds="Primary").use_feeds == FeedSelection.PRIMARY  # type: ignore[arg-type]

    with pytest.raises(FusionConfigError):
        FusionConfig(use_feeds="fused")  # type: ignore[arg-type]
    with pytest.raises(FusionConfigError):
        FusionConfig(use_feeds=None)  # type: ignore[arg-type]


def test_invalid_values_are_rejected() -> None:
    with pytest.raises(FusionConfigError):
        FusionConfig(emission_interval_ms="fast")  # type: ignore[arg-type]
    with pytest.raises(FusionConfigError):
        FusionConfig(forward_raw_measurements="yes")  # type: ignore[arg-type]
    with pytest.raises(FusionConfigError):
        FusionParams(time_step=0.0)
    with pytest.raises(FusionConfigError):
        FusionParams(coordinate_noise_m=math.inf)
    with pytest.raises(FusionConfigError):
        FusionParams(min_accuracy_m=True)  # type: ignore[arg-type]


def test_fractional_intervals_are_rejected() -> None:
    with pytest.raises(FusionConfigError):
        FusionConfig(emission_interval_ms=0.5)  # type: ignore[arg-type]
    with pytest.raises(FusionConfigError):
        loads_fusion_config("primary_min_interval_ms: 999.9\n")

    config: FusionConfig = loads_fusion_config("secondary_min_interval_ms: 2000.0\n")

    assert config.secondary_min_interval_ms == 2000
    assert isinstance(config.secondary_min_interval_ms, int)


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(FusionConfigError):
        FusionConfig.from_dict({"emission_interval": 100})
    with pytest.raises(FusionConfigError):
        FusionConfig.from_dict({"params": {"time_stp": 1.0}})
    with pytest.raises(FusionConfigError):
        FusionConfig.from_dict(["use_feeds"])  # type: ignore[arg-type]


def test_loads_yaml_text() -> None:
    config: FusionConfig = loads_fusion_config(
        "use_feeds: secondary\n"
        "emission_interval_ms: 250\n"
        "params:\n"
        "  altitude_noise_m: 3.5\n"
    )

    assert config.use_feeds == FeedSelection.SECONDARY
    assert config.emission_interval_ms == 250
    assert config.params.altitude_noise_m == 3.5
    assert config.params.coordinate_noise_m == 4.0


def test_empty_yaml_gives_defaults() -> None:
    assert loads_fusion_config("") == FusionConfig()


def test_invalid_yaml_is_reported() -> None:
    with pytest.raises(FusionConfigError):
        loads_fusion_config("use_feeds: [unterminated\n")


def test_dump_then_load(tmp_path: Path) -> None:
    config: FusionConfig = FusionConfig(
        use_feeds=FeedSelection.PRIMARY,
        emission_interval_ms=200,
        forward_raw_measurements=True,
        params=FusionParams(min_accuracy_m=0.5),
    )
    path: Path = tmp_path / "fusion.yaml"
    path.write_text(dumps_fusion_config(config), encoding="utf-8")

    assert load_fusion_config(path) == config


def test_missing_file_is_reported(tmp_path: Path) -> None:
    with pytest.raises(FusionConfigError):
        load_fusion_config(tmp_path / "missing.yaml")


def test_example_config_loads() -> None:
    config: FusionConfig = load_fusion_config(_EXAMPLE_CONFIG)

    assert config.use_feeds == FeedSelection.BOTH
    assert config.emission_interval_ms == 200
    assert config.forward_raw_measurements is True
