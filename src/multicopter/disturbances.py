"""
Stochastic force and moment disturbances.

The disturbance is modelled as continuous-time white noise with a given
power spectral density (intensity) Q. Over an integration step of length
dt it is approximated by a constant (zero-order-hold) sample with

    sample ~ N(0, Q / dt)   per component

so that the impulse accumulated over the step, sample * dt, has variance
Q * dt, as it would for the continuous process.

One sample is drawn per integration call. Every derivative evaluation in
that call (the four RK4 stages included) must see the same sample, and
the force part is kept afterwards so the accelerometer reads the force
that was actually applied during the step.

Determinism:
- Each generator owns its own numpy Generator. Seeding it makes runs
  reproducible; separate instances never share a stream.
"""

from __future__ import annotations

import numpy as np

from multicopter.errors import InvalidArgumentError
from multicopter.types import DisturbanceSample


class StochasticProcessGenerator:
    """
    Draws DisturbanceSample values from an instance-local Generator.

    Args:
        rng: Generator to draw from. If None, one is created from `seed`.
        seed: Seed for a fresh Generator (ignored when rng is given).
    """

    def __init__(self, rng: np.random.Generator | None = None, seed: int | None = None):
        self.rng = rng if rng is not None else np.random.default_rng(seed)

    def sample(self, dt: float, force_psd: float, moment_psd: float) -> DisturbanceSample:
        """
        Draw one force / moment disturbance pair for a step of length dt.

        Both 3-vectors are always drawn, so the position in the random
        stream depends only on the number of calls, not on the intensities.

        Args:
            dt: Step length [s], > 0
            force_psd: Force intensity [N²·s]
            moment_psd: Moment intensity [(N·m)²·s]

        Returns:
            DisturbanceSample (force in world frame, moment in body frame)
        """
        if not np.isfinite(dt) or dt <= 0.0:
            raise InvalidArgumentError(f"dt must be a positive finite number, got {dt}")

        force = np.sqrt(force_psd / dt) * self.rng.standard_normal(3)
        moment = np.sqrt(moment_psd / dt) * self.rng.standard_normal(3)
        return DisturbanceSample(force=force, moment=moment)
