"""
Mix Scheduling: order analyzed tracks and lay out the crossfade timeline.

- Tracks are ordered by ascending energy (stable), giving a build-up arc
- Target tempo is the rounded mean of the per-track BPMs
- Every non-final track plays a fixed 30 s segment, the final track plays
  its full duration
- Adjacent segments overlap by the 8 s transition; the outer edges of the
  first and last segment use a 2 s fade instead
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from ..analyze.bpm import round_half_up
from ..errors import InputError
from ..models import AnalyzedTrack, TimelineSegment

logger = logging.getLogger(__name__)

DEFAULT_SEGMENT_DURATION = 30.0
DEFAULT_TRANSITION_DURATION = 8.0
DEFAULT_EDGE_FADE = 2.0
MIN_TRACKS = 2


def order_by_energy(tracks: Sequence[AnalyzedTrack]) -> List[AnalyzedTrack]:
    """Sort by ascending energy; ties keep their input order."""
    return sorted(tracks, key=lambda t: t.energy)


def compute_target_bpm(tracks: Sequence[AnalyzedTrack]) -> int:
    """Mean of per-track BPMs, rounded."""
    if not tracks:
        raise InputError("Cannot compute a target BPM without tracks")
    return round_half_up(sum(t.bpm for t in tracks) / len(tracks))


def build_timeline(
    tracks: Sequence[AnalyzedTrack],
    segment_duration: float = DEFAULT_SEGMENT_DURATION,
    transition_duration: float = DEFAULT_TRANSITION_DURATION,
    edge_fade: float = DEFAULT_EDGE_FADE,
) -> List[TimelineSegment]:
    """
    Lay out already-ordered tracks as overlapping segments.

    start[i + 1] == start[i] + duration[i] - transition_duration

    The final segment spans the final track's full duration, but never less
    than one transition plus the edge fade (the remainder renders as silence).

    Args:
        tracks: Tracks in mix order
        segment_duration: Length of each non-final segment (seconds)
        transition_duration: Crossfade overlap between segments (seconds)
        edge_fade: Fade used on the outer edge of the first/last segment

    Returns:
        Ordered list of TimelineSegment
    """
    timeline = []
    start = 0.0
    last_index = len(tracks) - 1

    for idx, track in enumerate(tracks):
        is_first = idx == 0
        is_last = idx == last_index

        if is_last:
            duration = max(track.duration, transition_duration + edge_fade)
            if duration > track.duration:
                logger.warning(
                    f"Final track {track.track_id} is only {track.duration:.2f}s; "
                    f"padding its segment to {duration:.2f}s"
                )
        else:
            duration = segment_duration

        segment = TimelineSegment(
            index=idx,
            start=start,
            duration=duration,
            track=track,
            fade_in=edge_fade if is_first else transition_duration,
            fade_out=edge_fade if is_last else transition_duration,
        )
        timeline.append(segment)
        logger.debug(f"Segment {idx}: {track.track_id} {segment.start:.2f}s - {segment.end:.2f}s")

        start = start + duration - transition_duration

    return timeline


def total_duration(timeline: Sequence[TimelineSegment], transition_duration: float = DEFAULT_TRANSITION_DURATION) -> float:
    """Sum of segment durations minus one transition per overlap."""
    if not timeline:
        return 0.0
    return sum(s.duration for s in timeline) - (len(timeline) - 1) * transition_duration


@dataclass(frozen=True)
class MixSchedule:
    """Ordered tracks, their timeline and the shared target tempo."""

    tracks: tuple
    timeline: tuple
    target_bpm: int
    total_duration: float
    transition_duration: float = DEFAULT_TRANSITION_DURATION

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "target_bpm": self.target_bpm,
            "total_duration_seconds": self.total_duration,
            "transition_duration_seconds": self.transition_duration,
            "order": [t.track_id for t in self.tracks],
            "segments": [s.to_dict() for s in self.timeline],
        }


def schedule_mix(tracks: Sequence[Any], config: Optional[dict] = None) -> MixSchedule:
    """
    Order tracks and build the full mix schedule.

    Args:
        tracks: Analyzed tracks, in selection order
        config: Schedule config dict

    Returns:
        MixSchedule

    Raises:
        InputError: Fewer than 2 tracks, or a track that was not analyzed
    """
    config = config or {}

    if len(tracks) < MIN_TRACKS:
        raise InputError(f"At least {MIN_TRACKS} tracks are required, got {len(tracks)}")

    for track in tracks:
        if not isinstance(track, AnalyzedTrack):
            raise InputError(f"Track {getattr(track, 'track_id', track)!r} has not been analyzed")

    segment_duration = config.get("segment_duration_seconds", DEFAULT_SEGMENT_DURATION)
    transition = config.get("transition_duration_seconds", DEFAULT_TRANSITION_DURATION)
    edge_fade = config.get("edge_fade_seconds", DEFAULT_EDGE_FADE)

    if transition >= segment_duration:
        raise InputError(
            f"Transition ({transition}s) must be shorter than the segment length ({segment_duration}s)"
        )

    ordered = order_by_energy(tracks)
    target_bpm = compute_target_bpm(ordered)
    timeline = build_timeline(ordered, segment_duration, transition, edge_fade)
    duration = total_duration(timeline, transition)

    logger.info("DJ mixing order (by energy):")
    for idx, track in enumerate(ordered, 1):
        logger.info(f"  {idx}. {track.track_id} - {track.bpm} BPM, energy {track.energy:.4f}")

    logger.info(
        f"✅ Planned {len(timeline)} segments: target {target_bpm} BPM, "
        f"total {duration:.2f}s"
    )
    return MixSchedule(
        tracks=tuple(ordered),
        timeline=tuple(timeline),
        target_bpm=target_bpm,
        total_duration=duration,
        transition_duration=transition,
    )
