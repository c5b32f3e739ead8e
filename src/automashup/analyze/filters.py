"""
Single-pole IIR low-pass used to isolate bass/kick energy before peak picking.
"""

import math

import numpy as np
from scipy.signal import lfilter


def smoothing_coefficient(sample_rate: float, cutoff_hz: float) -> float:
    """Return alpha = dt / (RC + dt) for the given cutoff."""
    if sample_rate <= 0 or cutoff_hz <= 0:
        raise ValueError(f"sample_rate and cutoff must be positive (got {sample_rate}, {cutoff_hz})")
    rc = 1.0 / (2.0 * math.pi * cutoff_hz)
    dt = 1.0 / sample_rate
    return dt / (rc + dt)


def low_pass(samples: np.ndarray, sample_rate: float, cutoff_hz: float) -> np.ndarray:
    """
    One-pole exponential smoothing.

    y[0] = x[0]; y[i] = y[i-1] + alpha * (x[i] - y[i-1])

    Args:
        samples: Mono sample sequence
        sample_rate: Sample rate in Hz
        cutoff_hz: Cutoff frequency in Hz

    Returns:
        Filtered float64 array of the same length
    """
    alpha = smoothing_coefficient(sample_rate, cutoff_hz)
    x = np.asarray(samples, dtype=np.float64)
    if x.size == 0:
        return x.copy()

    # y[i] = alpha*x[i] + (1-alpha)*y[i-1]; the initial state makes y[0] == x[0]
    zi = np.array([(1.0 - alpha) * x[0]])
    y, _ = lfilter([alpha], [1.0, -(1.0 - alpha)], x, zi=zi)
    return y
