"""
Buffer-transform stages for the offline render chain.

Every stage is a callable `stage(buffer, sample_rate) -> buffer` over
(channels, frames) float arrays and returns a new array; inputs are never
modified. A Chain is an ordered list of stages with no shared state.
"""

import logging
import math
from typing import Iterable, List

import numpy as np
from scipy.signal import lfilter

logger = logging.getLogger(__name__)

_LEVEL_FLOOR = 1e-10


def db_to_amp(db: float) -> float:
    return 10.0 ** (db / 20.0)


class Stage:
    """Base class for render stages."""

    name = "stage"

    def __call__(self, buffer: np.ndarray, sample_rate: int) -> np.ndarray:
        raise NotImplementedError

    def __repr__(self) -> str:
        params = ", ".join(f"{k}={v}" for k, v in vars(self).items())
        return f"{type(self).__name__}({params})"


class GainEnvelope(Stage):
    """
    Linear fade-in / hold / fade-out keyed to a segment.

    Gain ramps 0 -> 1 over fade_in from the segment start, holds at 1, and
    ramps 1 -> 0 over fade_out ending at the segment end. Time is measured
    from the first frame of the buffer.
    """

    name = "gain_envelope"

    def __init__(self, fade_in: float, fade_out: float, duration: float):
        self.fade_in = fade_in
        self.fade_out = fade_out
        self.duration = duration

    def gains(self, frames: int, sample_rate: int) -> np.ndarray:
        t = np.arange(frames, dtype=np.float64) / sample_rate
        rise = t / self.fade_in if self.fade_in > 0 else np.ones_like(t)
        fall = (self.duration - t) / self.fade_out if self.fade_out > 0 else np.ones_like(t)
        return np.clip(np.minimum(rise, fall), 0.0, 1.0)

    def __call__(self, buffer: np.ndarray, sample_rate: int) -> np.ndarray:
        return buffer * self.gains(buffer.shape[-1], sample_rate)


class _Shelf(Stage):
    """RBJ cookbook shelving biquad with slope S = 1."""

    low = True

    def __init__(self, frequency: float, gain_db: float):
        self.frequency = frequency
        self.gain_db = gain_db

    def coefficients(self, sample_rate: int):
        """Return normalized (b, a) filter coefficients."""
        a_gain = 10.0 ** (self.gain_db / 40.0)
        w0 = 2.0 * math.pi * self.frequency / sample_rate
        cos_w0 = math.cos(w0)
        alpha = math.sin(w0) / 2.0 * math.sqrt(2.0)
        two_sqrt_a_alpha = 2.0 * math.sqrt(a_gain) * alpha

        ap1 = a_gain + 1.0
        am1 = a_gain - 1.0
        if self.low:
            b = [
                a_gain * (ap1 - am1 * cos_w0 + two_sqrt_a_alpha),
                2.0 * a_gain * (am1 - ap1 * cos_w0),
                a_gain * (ap1 - am1 * cos_w0 - two_sqrt_a_alpha),
            ]
            a = [
                ap1 + am1 * cos_w0 + two_sqrt_a_alpha,
                -2.0 * (am1 + ap1 * cos_w0),
                ap1 + am1 * cos_w0 - two_sqrt_a_alpha,
            ]
        else:
            b = [
                a_gain * (ap1 + am1 * cos_w0 + two_sqrt_a_alpha),
                -2.0 * a_gain * (am1 + ap1 * cos_w0),
                a_gain * (ap1 + am1 * cos_w0 - two_sqrt_a_alpha),
            ]
            a = [
                ap1 - am1 * cos_w0 + two_sqrt_a_alpha,
                2.0 * (am1 - ap1 * cos_w0),
                ap1 - am1 * cos_w0 - two_sqrt_a_alpha,
            ]

        a0 = a[0]
        return np.array(b) / a0, np.array(a) / a0

    def __call__(self, buffer: np.ndarray, sample_rate: int) -> np.ndarray:
        if self.gain_db == 0.0:
            return buffer.copy()
        if self.frequency >= sample_rate / 2.0:
            logger.warning(
                f"{type(self).__name__} at {self.frequency} Hz is above Nyquist for {sample_rate} Hz; bypassed"
            )
            return buffer.copy()
        b, a = self.coefficients(sample_rate)
        return lfilter(b, a, buffer, axis=-1)


class LowShelf(_Shelf):
    """Boost/cut below `frequency`."""

    name = "low_shelf"
    low = True


class HighShelf(_Shelf):
    """Boost/cut above `frequency`."""

    name = "high_shelf"
    low = False


class Compressor(Stage):
    """
    Feed-forward dynamics compressor.

    - Linked stereo peak detector (max magnitude across channels)
    - Soft-knee static curve around threshold_db
    - Gain reduction smoothed with one-pole attack/release coefficients
    """

    name = "compressor"

    def __init__(
        self,
        threshold_db: float,
        ratio: float,
        attack: float,
        release: float,
        knee_db: float = 0.0,
    ):
        if ratio < 1.0:
            raise ValueError(f"Compressor ratio must be >= 1 (got {ratio})")
        self.threshold_db = threshold_db
        self.ratio = ratio
        self.attack = attack
        self.release = release
        self.knee_db = knee_db

    def static_curve(self, level_db: np.ndarray) -> np.ndarray:
        """Map input level (dB) to output level (dB)."""
        overshoot = level_db - self.threshold_db
        slope = 1.0 / self.ratio - 1.0
        compressed = self.threshold_db + overshoot / self.ratio

        if self.knee_db <= 0.0:
            return np.where(overshoot > 0.0, compressed, level_db)

        half_knee = self.knee_db / 2.0
        in_knee = level_db + slope * (overshoot + half_knee) ** 2 / (2.0 * self.knee_db)
        return np.where(
            overshoot < -half_knee,
            level_db,
            np.where(overshoot > half_knee, compressed, in_knee),
        )

    @staticmethod
    def _coefficient(time_constant: float, sample_rate: int) -> float:
        if time_constant <= 0.0:
            return 0.0
        return math.exp(-1.0 / (time_constant * sample_rate))

    def gain_reduction_db(self, buffer: np.ndarray, sample_rate: int) -> np.ndarray:
        """Smoothed per-frame gain reduction in dB (always <= 0)."""
        level = np.max(np.abs(np.atleast_2d(buffer)), axis=0)
        level_db = 20.0 * np.log10(np.maximum(level, _LEVEL_FLOOR))
        target = self.static_curve(level_db) - level_db

        attack_coeff = self._coefficient(self.attack, sample_rate)
        release_coeff = self._coefficient(self.release, sample_rate)

        smoothed = np.empty_like(target)
        current = 0.0
        for i, desired in enumerate(target.tolist()):
            coeff = attack_coeff if desired < current else release_coeff
            current = coeff * current + (1.0 - coeff) * desired
            smoothed[i] = current
        return smoothed

    def __call__(self, buffer: np.ndarray, sample_rate: int) -> np.ndarray:
        if buffer.shape[-1] == 0:
            return buffer.copy()
        gains = 10.0 ** (self.gain_reduction_db(buffer, sample_rate) / 20.0)
        return buffer * gains


class Limiter(Compressor):
    """High-ratio, fast compressor used as the master limiter."""

    name = "limiter"

    def __init__(
        self,
        threshold_db: float = -1.0,
        ratio: float = 20.0,
        attack: float = 0.001,
        release: float = 0.1,
        knee_db: float = 0.0,
    ):
        super().__init__(threshold_db, ratio, attack, release, knee_db)


class MakeupGain(Stage):
    """Fixed linear gain."""

    name = "makeup_gain"

    def __init__(self, gain: float):
        self.gain = gain

    def __call__(self, buffer: np.ndarray, sample_rate: int) -> np.ndarray:
        return buffer * self.gain


class Chain:
    """Ordered list of stages; each stage consumes the previous output."""

    def __init__(self, stages: Iterable[Stage]):
        self.stages: List[Stage] = list(stages)

    def __call__(self, buffer: np.ndarray, sample_rate: int) -> np.ndarray:
        for stage in self.stages:
            buffer = stage(buffer, sample_rate)
        return buffer

    def __len__(self) -> int:
        return len(self.stages)

    def __iter__(self):
        return iter(self.stages)

    def __repr__(self) -> str:
        return " -> ".join(stage.name for stage in self.stages)
