"""
Data model for a single mashup request.

Buffers are stored as (channels, frames) float32 arrays and are marked
read-only; every transformation produces a new buffer.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import numpy as np

from .errors import InputError

logger = logging.getLogger(__name__)


def _as_channel_array(samples: Any) -> np.ndarray:
    """Coerce per-channel sample sequences into a read-only (channels, frames) array."""
    try:
        array = np.asarray(samples, dtype=np.float32)
    except ValueError as e:
        raise InputError(f"Channel buffers differ in length: {e}") from e

    if array.ndim == 1:
        array = array[np.newaxis, :]
    if array.ndim != 2:
        raise InputError(f"Expected (channels, frames) samples, got shape {array.shape}")

    array = np.array(array, dtype=np.float32, copy=True)
    array.flags.writeable = False
    return array


@dataclass(frozen=True, eq=False)
class DecodedTrack:
    """Decoded PCM audio for one selected track."""

    track_id: str
    sample_rate: int
    samples: np.ndarray
    source: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.sample_rate, (int, np.integer)) or self.sample_rate <= 0:
            raise InputError(f"Track {self.track_id}: sample rate must be a positive integer")
        samples = _as_channel_array(self.samples)
        if samples.shape[0] == 0:
            raise InputError(f"Track {self.track_id}: at least one channel is required")
        if not np.all(np.isfinite(samples)):
            raise InputError(f"Track {self.track_id}: samples contain NaN or infinite values")
        object.__setattr__(self, "sample_rate", int(self.sample_rate))
        object.__setattr__(self, "samples", samples)

    @property
    def channels(self) -> int:
        return self.samples.shape[0]

    @property
    def frames(self) -> int:
        return self.samples.shape[1]

    @property
    def duration(self) -> float:
        """Duration in seconds"""
        return self.frames / self.sample_rate

    def channel(self, index: int = 0) -> np.ndarray:
        return self.samples[index]

    def __repr__(self) -> str:
        return (
            f"DecodedTrack(id={self.track_id}, sr={self.sample_rate}, "
            f"channels={self.channels}, duration={self.duration:.2f}s)"
        )


@dataclass(frozen=True, eq=False)
class AnalyzedTrack:
    """A decoded track plus its tempo and energy descriptors."""

    track: DecodedTrack
    bpm: int
    peaks: Tuple[int, ...]
    energy: float
    spectral_centroid: float

    def __post_init__(self):
        object.__setattr__(self, "peaks", tuple(int(p) for p in self.peaks))

    @property
    def track_id(self) -> str:
        return self.track.track_id

    @property
    def duration(self) -> float:
        return self.track.duration

    @property
    def sample_rate(self) -> int:
        return self.track.sample_rate

    def to_dict(self) -> Dict[str, Any]:
        """Display metadata (never written into the audio file)."""
        return {
            "track_id": self.track_id,
            "bpm": self.bpm,
            "energy": self.energy,
            "spectral_centroid": self.spectral_centroid,
            "beats_detected": len(self.peaks),
            "duration_seconds": self.duration,
        }

    def __repr__(self) -> str:
        return f"AnalyzedTrack(id={self.track_id}, bpm={self.bpm}, energy={self.energy:.4f})"


@dataclass(frozen=True, eq=False)
class TimelineSegment:
    """Placement of one track on the mashup timeline (all times in seconds)."""

    index: int
    start: float
    duration: float
    track: AnalyzedTrack
    fade_in: float
    fade_out: float

    @property
    def end(self) -> float:
        return self.start + self.duration

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "track_id": self.track.track_id,
            "start_seconds": self.start,
            "end_seconds": self.end,
            "duration_seconds": self.duration,
            "fade_in_seconds": self.fade_in,
            "fade_out_seconds": self.fade_out,
        }


@dataclass(frozen=True, eq=False)
class MashupResult:
    """Rendered mix, its encoded WAVE blob and the analysis used to build it."""

    samples: np.ndarray
    sample_rate: int
    wav: bytes
    tracks: Tuple[AnalyzedTrack, ...]
    timeline: Tuple[TimelineSegment, ...]
    target_bpm: int
    total_duration: float

    def metadata(self) -> Dict[str, Any]:
        """Per-track BPM/energy, mixing order and total duration for display."""
        return {
            "target_bpm": self.target_bpm,
            "total_duration_seconds": self.total_duration,
            "sample_rate": self.sample_rate,
            "order": [t.track_id for t in self.tracks],
            "tracks": [t.to_dict() for t in self.tracks],
            "timeline": [s.to_dict() for s in self.timeline],
        }

    def save(self, output_dir: str, name: str = "mashup") -> Tuple[Path, Path]:
        """
        Write the WAVE blob and a JSON metadata sidecar.

        Args:
            output_dir: Directory to write into (created if missing)
            name: Base file name without extension

        Returns:
            Tuple of (wav_path, json_path)
        """
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        wav_path = output_path / f"{name}.wav"
        json_path = output_path / f"{name}.json"

        wav_path.write_bytes(self.wav)
        with open(json_path, "w") as f:
            json.dump(self.metadata(), f, indent=2)

        logger.info(f"Wrote mashup: {wav_path} ({len(self.wav)} bytes)")
        return wav_path, json_path

