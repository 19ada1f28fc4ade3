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
Fuse asynchronous position feeds into a fixed-cadence location estimate
"""

from __future__ import annotations

from oasis_location.feeds.feed_source import FeedListener
from oasis_location.feeds.feed_source import FeedSource
from oasis_location.feeds.feed_source import PushFeedSource
from oasis_location.fusion.axis_filter import AxisFilter
from oasis_location.fusion.estimation_session import EstimationSession
from oasis_location.fusion.fusion_config import FusionConfig
from oasis_location.fusion.fusion_config import FusionConfigError
from oasis_location.fusion.fusion_config import FusionParams
from oasis_location.fusion.fusion_manager import FusionManager
from oasis_location.fusion.fusion_manager import SessionHandle
from oasis_location.fusion.fusion_types import Estimate
from oasis_location.fusion.fusion_types import Feed
from oasis_location.fusion.fusion_types import FeedSelection
from oasis_location.fusion.fusion_types import FeedStatus
from oasis_location.fusion.fusion_types import FeedStatusEvent
from oasis_location.fusion.fusion_types import Measurement


__all__ = [
    "AxisFilter",
    "Estimate",
    "EstimationSession",
    "Feed",
    "FeedListener",
    "FeedSelection",
    "FeedSource",
    "FeedStatus",
    "FeedStatusEvent",
    "FusionConfig",
    "FusionConfigError",
    "FusionManager",
    "FusionParams",
    "Measurement",
    "PushFeedSource",
    "SessionHandle",
]
