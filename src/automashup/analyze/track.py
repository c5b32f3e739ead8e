"""
Per-track analysis: tempo, beat peaks, energy and brightness.

Energy and spectral centroid are time-domain proxies; no frequency
transform is performed.
"""

import logging
from typing import List, Optional, Sequence

import numpy as np

from ..cancel import CancellationToken, check_cancelled
from ..errors import AnalysisError, MashupError
from ..models import AnalyzedTrack, DecodedTrack
from .bpm import detect_bpm

logger = logging.getLogger(__name__)

DEFAULT_CENTROID_WINDOW = 2048


def compute_energy(samples: np.ndarray) -> float:
    """Mean squared amplitude of a mono buffer (0.0 when empty)."""
    x = np.asarray(samples, dtype=np.float64)
    if x.size == 0:
        return 0.0
    return float(np.mean(x * x))


def compute_spectral_centroid(samples: np.ndarray, window: int = DEFAULT_CENTROID_WINDOW) -> float:
    """
    Amplitude-weighted mean sample index over the first `window` samples.

    Returns:
        sum(i * |x_i|) / sum(|x_i|), or 0.0 when the magnitude sum is zero
    """
    magnitude = np.abs(np.asarray(samples, dtype=np.float64)[:window])
    total = float(magnitude.sum())
    if total == 0.0:
        return 0.0
    weighted = float(np.dot(np.arange(magnitude.size, dtype=np.float64), magnitude))
    return weighted / total


def analyze_track(track: DecodedTrack, config: Optional[dict] = None) -> AnalyzedTrack:
    """
    Analyze one decoded track.

    All descriptors are computed on the first channel. Tracks too short for
    peak detection fall back to 120 BPM; that is not an error.

    Args:
        track: Decoded input track
        config: Analysis config dict

    Returns:
        AnalyzedTrack
    """
    config = config or {}
    mono = track.channel(0)

    bpm, peaks = detect_bpm(mono, track.sample_rate, config)
    energy = compute_energy(mono)
    centroid = compute_spectral_centroid(mono, int(config.get("centroid_window", DEFAULT_CENTROID_WINDOW)))

    logger.info(
        f"✅ {track.track_id}: {bpm} BPM ({len(peaks)} beats), "
        f"energy {energy:.4f}, centroid {centroid:.1f}"
    )
    return AnalyzedTrack(
        track=track,
        bpm=int(bpm),
        peaks=tuple(peaks),
        energy=energy,
        spectral_centroid=centroid,
    )


def analyze_tracks(
    tracks: Sequence[DecodedTrack],
    config: Optional[dict] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> List[AnalyzedTrack]:
    """
    Analyze every selected track, all-or-nothing.

    Raises:
        AnalysisError: If any track fails; no partial result is returned
    """
    analyzed = []
    for idx, track in enumerate(tracks):
        check_cancelled(cancel_token, f"analysis of track {idx + 1}")
        try:
            analyzed.append(analyze_track(track, config))
        except MashupError:
            raise
        except (ValueError, FloatingPointError, MemoryError) as e:
            raise AnalysisError(f"Analysis failed for track {track.track_id}: {e}") from e
    return analyzed
