"""
BPM estimation from beat peaks via an inter-peak interval histogram.

This is a coarse heuristic, not an exact beat tracker:
- Low-pass the first channel at 150 Hz to keep kick/bass energy
- Pick peaks at least 0.3 s apart
- Bucket consecutive intervals to the nearest 100 samples
- The most frequent bucket gives the tempo, then octave correction
  folds it into the 60-180 BPM range (120 BPM when nothing usable remains)
"""

import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .filters import low_pass
from .peaks import detect_peaks, DEFAULT_THRESHOLD, DEFAULT_MIN_DISTANCE_SECONDS

logger = logging.getLogger(__name__)

INTERVAL_BUCKET_SAMPLES = 100
MIN_BPM = 60
MAX_BPM = 180
FALLBACK_BPM = 120
DEFAULT_LOWPASS_CUTOFF_HZ = 150.0


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity."""
    return int(math.floor(value + 0.5))


def interval_histogram(peaks: Sequence[int], bucket: int = INTERVAL_BUCKET_SAMPLES) -> Dict[int, int]:
    """
    Count consecutive inter-peak intervals per bucket.

    Args:
        peaks: Ascending peak sample indices
        bucket: Bucket width in samples

    Returns:
        Dict of bucket value -> count, in first-encountered order
    """
    counts: Dict[int, int] = {}
    for previous, current in zip(peaks, peaks[1:]):
        rounded = round_half_up((current - previous) / bucket) * bucket
        counts[rounded] = counts.get(rounded, 0) + 1
    return counts


def dominant_interval(histogram: Dict[int, int]) -> int:
    """
    Pick the most frequent bucket.

    Ties go to the first bucket value encountered that reached the maximum
    count; a later bucket only wins with a strictly greater count.

    Returns:
        Dominant interval in samples, or 0 for an empty histogram
    """
    max_count = 0
    dominant = 0
    for interval, count in histogram.items():
        if count > max_count:
            max_count = count
            dominant = interval
    return dominant


def correct_bpm(bpm: float) -> int:
    """
    Fold a raw BPM into the 60-180 range.

    Doubles once below 60, halves once above 180. Anything still outside
    the range (degenerate or silent input) falls back to 120.
    """
    corrected = bpm
    if bpm < MIN_BPM:
        corrected = bpm * 2
    elif bpm > MAX_BPM:
        corrected = bpm / 2

    if not math.isfinite(corrected):
        return FALLBACK_BPM

    corrected = round_half_up(corrected)
    if corrected < MIN_BPM or corrected > MAX_BPM:
        return FALLBACK_BPM
    return corrected


def estimate_bpm(peaks: Sequence[int], sample_rate: int) -> Tuple[int, List[int]]:
    """
    Estimate tempo from ascending peak positions.

    Args:
        peaks: Ascending peak sample indices
        sample_rate: Sample rate in Hz

    Returns:
        Tuple of (bpm, peaks)
    """
    peaks = [int(p) for p in peaks]
    interval = dominant_interval(interval_histogram(peaks))

    if interval <= 0:
        logger.debug(f"No usable beat intervals ({len(peaks)} peaks); using {FALLBACK_BPM} BPM")
        return FALLBACK_BPM, peaks

    raw_bpm = round_half_up(60.0 / (interval / sample_rate))
    return correct_bpm(raw_bpm), peaks


def detect_bpm(
    samples: np.ndarray, sample_rate: int, config: Optional[dict] = None
) -> Tuple[int, List[int]]:
    """
    Detect BPM and beat peaks from a mono buffer.

    Args:
        samples: Mono sample buffer
        sample_rate: Sample rate in Hz
        config: Analysis config dict

    Returns:
        Tuple of (bpm, peaks)
    """
    config = config or {}
    cutoff = config.get("lowpass_cutoff_hz", DEFAULT_LOWPASS_CUTOFF_HZ)
    threshold = config.get("peak_threshold", DEFAULT_THRESHOLD)
    min_distance = config.get("min_peak_distance_seconds", DEFAULT_MIN_DISTANCE_SECONDS)

    filtered = low_pass(samples, sample_rate, cutoff)
    peaks = detect_peaks(filtered, sample_rate, threshold=threshold, min_distance_seconds=min_distance)
    bpm, peaks = estimate_bpm(peaks, sample_rate)

    logger.debug(f"Detected BPM: {bpm} ({len(peaks)} beats found)")
    return bpm, peaks
