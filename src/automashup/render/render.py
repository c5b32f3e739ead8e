"""
Offline Render Engine.

Renders a mix timeline into one stereo float buffer:
- Per-track chain: gain envelope -> low shelf -> high shelf -> compressor
- Every track is placed at its absolute start time and summed into a master bus
- Master chain: compressor -> limiter -> makeup gain
- Sample rate comes from the first segment's track (no resampling)
"""

import logging
from typing import Optional, Sequence

import numpy as np

from ..cancel import CancellationToken, check_cancelled
from ..errors import MashupError, RenderError
from ..models import TimelineSegment
from .stages import Chain, Compressor, GainEnvelope, HighShelf, Limiter, LowShelf, MakeupGain

logger = logging.getLogger(__name__)

OUTPUT_CHANNELS = 2


def _to_stereo(samples: np.ndarray) -> np.ndarray:
    """Up-mix mono to stereo; keep the first two channels otherwise."""
    if samples.shape[0] == 1:
        return np.repeat(samples, OUTPUT_CHANNELS, axis=0)
    return samples[:OUTPUT_CHANNELS]


def _segment_source(segment: TimelineSegment, frames: int) -> np.ndarray:
    """
    First `frames` frames of the segment's source as a stereo float64 buffer.

    Sources shorter than the segment are zero-padded.
    """
    source = _to_stereo(segment.track.track.samples)
    out = np.zeros((OUTPUT_CHANNELS, frames), dtype=np.float64)
    available = min(frames, source.shape[1])
    out[:, :available] = source[:, :available]
    return out


class RenderEngine:
    """Offline multi-track renderer."""

    def __init__(self, config: Optional[dict] = None):
        """
        Initialize render engine.

        Args:
            config: Render config dict
        """
        self.config = config or {}
        logger.debug("RenderEngine initialized")

    def build_track_chain(self, segment: TimelineSegment) -> Chain:
        """Gain envelope -> low shelf -> high shelf -> per-track compressor."""
        cfg = self.config
        return Chain([
            GainEnvelope(segment.fade_in, segment.fade_out, segment.duration),
            LowShelf(cfg.get("low_shelf_hz", 200.0), cfg.get("low_shelf_gain_db", 3.0)),
            HighShelf(cfg.get("high_shelf_hz", 3000.0), cfg.get("high_shelf_gain_db", 2.0)),
            Compressor(
                threshold_db=cfg.get("track_compressor_threshold_db", -30.0),
                ratio=cfg.get("track_compressor_ratio", 3.0),
                attack=cfg.get("track_compressor_attack_seconds", 0.01),
                release=cfg.get("track_compressor_release_seconds", 0.25),
                knee_db=cfg.get("track_compressor_knee_db", 12.0),
            ),
        ])

    def build_master_chain(self) -> Chain:
        """Master compressor -> limiter -> makeup gain."""
        cfg = self.config
        return Chain([
            Compressor(
                threshold_db=cfg.get("master_compressor_threshold_db", -24.0),
                ratio=cfg.get("master_compressor_ratio", 4.0),
                attack=cfg.get("master_compressor_attack_seconds", 0.003),
                release=cfg.get("master_compressor_release_seconds", 0.25),
                knee_db=cfg.get("master_compressor_knee_db", 30.0),
            ),
            Limiter(
                threshold_db=cfg.get("limiter_threshold_db", -1.0),
                ratio=cfg.get("limiter_ratio", 20.0),
                attack=cfg.get("limiter_attack_seconds", 0.001),
                release=cfg.get("limiter_release_seconds", 0.1),
            ),
            MakeupGain(cfg.get("makeup_gain", 1.8)),
        ])

    def render(
        self,
        timeline: Sequence[TimelineSegment],
        total_duration: float,
        cancel_token: Optional[CancellationToken] = None,
    ) -> np.ndarray:
        """
        Render the timeline to a (2, frames) float32 buffer.

        Args:
            timeline: Ordered timeline segments
            total_duration: Precomputed mashup duration in seconds
            cancel_token: Optional cooperative cancellation token

        Returns:
            Rendered stereo buffer

        Raises:
            RenderError: On empty timelines or internal numeric failure
        """
        if not timeline:
            raise RenderError("Cannot render an empty timeline")

        sample_rate = timeline[0].track.sample_rate
        total_frames = int(round(total_duration * sample_rate))
        if total_frames <= 0:
            raise RenderError(f"Invalid mashup duration: {total_duration}s")

        logger.info(
            f"Rendering {len(timeline)} tracks: {total_duration:.2f}s @ {sample_rate} Hz"
        )

        try:
            bus = np.zeros((OUTPUT_CHANNELS, total_frames), dtype=np.float64)

            for segment in timeline:
                check_cancelled(cancel_token, f"rendering segment {segment.index + 1}")

                if segment.track.sample_rate != sample_rate:
                    logger.warning(
                        f"{segment.track.track_id} is {segment.track.sample_rate} Hz, "
                        f"rendering at {sample_rate} Hz without resampling"
                    )

                start_frame = int(round(segment.start * sample_rate))
                frames = int(round(segment.duration * sample_rate))
                frames = min(frames, total_frames - start_frame)
                if frames <= 0:
                    logger.warning(f"Segment {segment.index} lies outside the mashup; skipped")
                    continue

                chain = self.build_track_chain(segment)
                processed = chain(_segment_source(segment, frames), sample_rate)

                if processed.shape != (OUTPUT_CHANNELS, frames):
                    raise RenderError(
                        f"Track chain for {segment.track.track_id} produced shape "
                        f"{processed.shape}, expected {(OUTPUT_CHANNELS, frames)}"
                    )

                bus[:, start_frame:start_frame + frames] += processed
                logger.debug(
                    f"{segment.track.track_id}: {segment.start:.2f}s - {segment.end:.2f}s ({chain})"
                )

            check_cancelled(cancel_token, "master bus processing")
            master = self.build_master_chain()
            output = master(bus, sample_rate)

        except MashupError:
            raise
        except (ValueError, FloatingPointError, MemoryError) as e:
            raise RenderError(f"Offline render failed: {e}") from e

        if not np.all(np.isfinite(output)):
            raise RenderError("Rendered buffer contains non-finite samples")

        logger.info(f"✅ Render complete: {output.shape[1]} frames")
        return output.astype(np.float32)
