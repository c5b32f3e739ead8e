"""
Beat peak picking on a low-passed signal.

Peaks are locally-maximal magnitude events above a threshold, spaced at
least min_distance apart. An accepted peak suppresses evaluation of the
indices inside its window.
"""

import logging
import math
from typing import List

import numpy as np
from scipy.ndimage import maximum_filter1d

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.7
DEFAULT_MIN_DISTANCE_SECONDS = 0.3


def min_peak_distance(sample_rate: float, min_distance_seconds: float = DEFAULT_MIN_DISTANCE_SECONDS) -> int:
    """Minimum inter-peak distance in samples."""
    return int(math.floor(sample_rate * min_distance_seconds))


def detect_peaks(
    filtered: np.ndarray,
    sample_rate: float,
    threshold: float = DEFAULT_THRESHOLD,
    min_distance_seconds: float = DEFAULT_MIN_DISTANCE_SECONDS,
) -> List[int]:
    """
    Find ascending sample indices of beat peaks.

    The threshold is a proportion of the buffer's own peak magnitude, so
    detection does not change under uniform amplitude scaling.

    Args:
        filtered: Low-passed mono signal
        sample_rate: Sample rate in Hz
        threshold: Proportion of peak full-scale a candidate must exceed
        min_distance_seconds: Minimum spacing between peaks

    Returns:
        Strictly increasing list of sample indices (empty for silence)
    """
    magnitude = np.abs(np.asarray(filtered, dtype=np.float64))
    min_distance = min_peak_distance(sample_rate, min_distance_seconds)
    n = magnitude.size

    if min_distance < 1 or n < 2 * min_distance:
        return []

    full_scale = float(magnitude.max())
    if full_scale <= 0.0:
        return []
    magnitude = magnitude / full_scale

    # Window for index i covers [i - min_distance, i + min_distance)
    window_max = maximum_filter1d(magnitude, size=2 * min_distance, mode="constant", cval=0.0)

    scan = magnitude[min_distance:n - min_distance]
    candidates = np.flatnonzero(scan > threshold) + min_distance

    peaks: List[int] = []
    next_allowed = min_distance
    for i in candidates:
        if i < next_allowed:
            continue
        if magnitude[i] >= window_max[i]:
            peaks.append(int(i))
            next_allowed = i + min_distance + 1

    logger.debug(f"Detected {len(peaks)} peaks (min distance {min_distance} samples)")
    return peaks
