################################################################################
#
#  Copyright (C) 2026 Garrett Brown
#  This file is part of OASIS - https://github.com/eigendude/OASIS
#
#  SPDX-License-Identifier: Apache-2.0
#  See DOCS/LICENSING.md for more information.
#
################################################################################

"""Scalar Kalman filter tracking position and velocity along one axis."""

from __future__ import annotations

import math
from dataclasses import dataclass
from dataclasses import field

import numpy as np
from numpy.typing import NDArray


_FLOAT_ARRAY = NDArray[np.float64]


@dataclass
class AxisFilterCounters:
    """Counters tracking how many steps have been applied."""

    # Count of prediction steps
    predicts: int = 0

    # Count of measurement corrections
    updates: int = 0


@dataclass
class AxisFilterState:
    """Mutable state for the axis filter."""

    # Estimated position in axis units
    x: float = 0.0

    # Estimated velocity in axis units per time step
    v: float = 0.0

    # State covariance for [x, v], kept symmetric by the update equations
    P: _FLOAT_ARRAY = field(default_factory=lambda: np.zeros((2, 2), dtype=np.float64))

    # Last innovation z - x in axis units
    last_innovation: float = 0.0

    # Last innovation variance S
    last_S: float = 0.0

    counters: AxisFilterCounters = field(default_factory=AxisFilterCounters)


class AxisFilter:
    """
    Constant-velocity Kalman filter over one independent spatial axis.

    State vector:
        [x, v] = position and velocity along the axis.

    Process model:
        x_k+1 = x_k + v_k t + a t^2 / 2
        v_k+1 = v_k + a t

        where t is a fixed nominal time step applied to every prediction,
        independent of the wall-clock spacing between calls.

    Process noise:
        Discretized constant-velocity kinematics driven by an acceleration
        with standard deviation q:

            Q = q^2 [[t^4/4, t^3/2],
                     [t^3/2, t^2  ]]

    Measurement model:
        z = H [x, v]^T + r, with H = [1, 0] and r ~ N(0, R).

    Covariance update:
        One-step form P = (I - K H) P, evaluated element-wise from the
        pre-update covariance.
    """

    def __init__(self, time_step: float, process_noise_std: float) -> None:
        t: float = float(time_step)
        q: float = float(process_noise_std)
        if not math.isfinite(t) or t <= 0.0:
            raise ValueError(f"time_step must be positive and finite, got {t}")
        if not math.isfinite(q) or q < 0.0:
            raise ValueError(
                f"process_noise_std must be non-negative and finite, got {q}"
            )

        # Time step lookups
        self._t: float = t
        self._t2: float = t * t
        self._t2d2: float = self._t2 / 2.0
        self._t3d2: float = self._t2 * t / 2.0
        self._t4d4: float = self._t2 * self._t2 / 4.0

        self._process_noise_std: float = q

        # Process noise covariance
        self._Q: _FLOAT_ARRAY = self._kinematic_covariance(q)

        # Until reset() is called, assume one step of process noise
        self._state: AxisFilterState = AxisFilterState(
            P=np.array(self._Q, dtype=np.float64)
        )

    @property
    def state(self) -> AxisFilterState:
        """Return the mutable filter state."""

        return self._state

    @property
    def time_step(self) -> float:
        return self._t

    @property
    def process_noise_std(self) -> float:
        return self._process_noise_std

    def reset(self, position: float, velocity: float, noise_std: float) -> None:
        """Overwrite the state and seed the covariance from a noise sigma.

        Args:
            position: Initial position in axis units
            velocity: Initial velocity in axis units per time step
            noise_std: Standard deviation scaled by the kinematic constants
        """

        self._state.x = float(position)
        self._state.v = float(velocity)
        self._state.P = self._kinematic_covariance(float(noise_std))

    def predict(self, acceleration: float = 0.0) -> None:
        """Propagate the state by one nominal time step.

        Args:
            acceleration: Control input, zero unless a known acceleration acts
                on the axis
        """

        a: float = float(acceleration)
        t: float = self._t

        # x = F.x + G.u
        self._state.x = self._state.x + self._state.v * t + a * self._t2d2
        self._state.v = self._state.v + a * t

        # P = F.P.F' + Q
        P: _FLOAT_ARRAY = self._state.P
        Pa: float = float(P[0, 0])
        Pb: float = float(P[0, 1])
        Pc: float = float(P[1, 0])
        Pd: float = float(P[1, 1])

        Pdt: float = Pd * t
        FPFt_b: float = Pb + Pdt
        FPFt_a: float = Pa + t * (Pc + FPFt_b)
        FPFt_c: float = Pc + Pdt
        FPFt_d: float = Pd

        self._state.P = np.array(
            [
                [FPFt_a, FPFt_b],
                [FPFt_c, FPFt_d],
            ],
            dtype=np.float64,
        ) + self._Q
        self._state.counters.predicts += 1

    def update(self, position: float, noise_std: float) -> None:
        """Correct the state with a position measurement.

        Args:
            position: Measured position in axis units
            noise_std: Measurement noise sigma in axis units, must be > 0
        """

        z: float = float(position)
        noise: float = float(noise_std)
        if not math.isfinite(z):
            raise ValueError(f"Measured position must be finite, got {z}")
        if not math.isfinite(noise) or noise <= 0.0:
            raise ValueError(f"noise_std must be positive and finite, got {noise}")

        R: float = noise * noise

        P: _FLOAT_ARRAY = self._state.P
        Pa: float = float(P[0, 0])
        Pb: float = float(P[0, 1])
        Pc: float = float(P[1, 0])
        Pd: float = float(P[1, 1])

        # y = z - H.x
        y: float = z - self._state.x

        # S = H.P.H' + R
        S: float = Pa + R

        # K = P.H'.S^-1
        Ka: float = Pa / S
        Kb: float = Pc / S

        # x = x + K.y
        self._state.x = self._state.x + Ka * y
        self._state.v = self._state.v + Kb * y

        # P = P - K.(H.P)
        self._state.P = np.array(
            [
                [Pa - Ka * Pa, Pb - Ka * Pb],
                [Pc - Kb * Pa, Pd - Kb * Pb],
            ],
            dtype=np.float64,
        )
        self._state.last_innovation = y
        self._state.last_S = S
        self._state.counters.updates += 1

    def position(self) -> float:
        return float(self._state.x)

    def velocity(self) -> float:
        return float(self._state.v)

    def accuracy(self) -> float:
        """Return sqrt(P_vv) / t as the reported accuracy.

        This is derived from the velocity variance rather than the position
        variance. Reported accuracy values depend on it, so it is kept as is.
        """

        return math.sqrt(max(float(self._state.P[1, 1]), 0.0)) / self._t

    def covariance(self) -> _FLOAT_ARRAY:
        """Return a copy of the 2x2 state covariance matrix."""

        return np.array(self._state.P, dtype=np.float64)

    def get_diagnostics_snapshot(self) -> dict[str, object]:
        """Return a snapshot of recent diagnostic values."""

        return {
            "x": self._state.x,
            "v": self._state.v,
            "P_xx": float(self._state.P[0, 0]),
            "P_vv": float(self._state.P[1, 1]),
            "last_innovation": self._state.last_innovation,
            "last_S": self._state.last_S,
            "predicts": self._state.counters.predicts,
            "updates": self._state.counters.updates,
        }

    def _kinematic_covariance(self, noise_std: float) -> _FLOAT_ARRAY:
        n2: float = noise_std * noise_std
        return np.array(
            [
                [n2 * self._t4d4, n2 * self._t3d2],
                [n2 * self._t3d2, n2 * self._t2],
            ],
            dtype=np.float64,
        )
