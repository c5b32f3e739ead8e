"""
Mashup orchestration: fetch -> analyze -> schedule -> render -> encode.

One request owns its buffers end to end; nothing is shared between
concurrent requests. Every phase is all-or-nothing and reports a single
failure before re-raising.
"""

import copy
import logging
from typing import List, Optional, Sequence, Union

from .analyze.track import analyze_tracks
from .cancel import CancellationToken, check_cancelled
from .config import Config
from .errors import InputError, MashupError
from .fetch import fetch_tracks
from .generate.schedule import MIN_TRACKS, MixSchedule, schedule_mix
from .models import AnalyzedTrack, DecodedTrack, MashupResult
from .render.render import RenderEngine
from .render.wav import encode_wav

logger = logging.getLogger(__name__)


class MashupEngine:
    """End-to-end mashup generator for one or more requests."""

    def __init__(self, config: Optional[Union[Config, dict]] = None):
        """
        Args:
            config: Config instance or raw config dict (defaults when None)
        """
        if config is None:
            config = Config.default()
        elif not isinstance(config, Config):
            config = Config(copy.deepcopy(config))
        self.config = config
        logger.debug(f"MashupEngine initialized with {config}")

    def fetch(
        self, sources: Sequence[str], cancel_token: Optional[CancellationToken] = None
    ) -> List[DecodedTrack]:
        """Fetch and decode every source (all-or-nothing)."""
        self._require_track_count(sources)
        fetch_cfg = self.config["fetch"]
        try:
            return fetch_tracks(
                sources,
                max_workers=fetch_cfg.get("max_workers", 4),
                timeout=fetch_cfg.get("timeout_seconds", 30),
                cancel_token=cancel_token,
            )
        except MashupError as e:
            logger.error(f"Fetch failed: {e}")
            raise

    def analyze(
        self, tracks: Sequence[DecodedTrack], cancel_token: Optional[CancellationToken] = None
    ) -> List[AnalyzedTrack]:
        """Analyze every decoded track (all-or-nothing)."""
        self._require_track_count(tracks)
        try:
            return analyze_tracks(tracks, self.config["analysis"], cancel_token)
        except MashupError as e:
            logger.error(f"Analysis failed: {e}")
            raise

    def schedule(
        self, analyzed: Sequence[AnalyzedTrack], cancel_token: Optional[CancellationToken] = None
    ) -> MixSchedule:
        """Order analyzed tracks and build the timeline."""
        try:
            check_cancelled(cancel_token, "scheduling")
            return schedule_mix(analyzed, self.config["schedule"])
        except MashupError as e:
            logger.error(f"Scheduling failed: {e}")
            raise

    def render(
        self, schedule: MixSchedule, cancel_token: Optional[CancellationToken] = None
    ) -> MashupResult:
        """Render a schedule and encode it to WAVE."""
        try:
            check_cancelled(cancel_token, "render")
            engine = RenderEngine(self.config["render"])
            samples = engine.render(schedule.timeline, schedule.total_duration, cancel_token)
            sample_rate = schedule.timeline[0].track.sample_rate
            wav = encode_wav(samples, sample_rate)
        except MashupError as e:
            logger.error(f"Render failed: {e}")
            raise

        logger.info(
            f"🎉 Mashup complete: {len(schedule.tracks)} tracks, "
            f"{schedule.total_duration:.2f}s, {len(wav) / 1024 / 1024:.2f} MB"
        )
        return MashupResult(
            samples=samples,
            sample_rate=sample_rate,
            wav=wav,
            tracks=schedule.tracks,
            timeline=schedule.timeline,
            target_bpm=schedule.target_bpm,
            total_duration=schedule.total_duration,
        )

    def create_mashup(
        self, tracks: Sequence[DecodedTrack], cancel_token: Optional[CancellationToken] = None
    ) -> MashupResult:
        """Analyze, schedule and render already-decoded tracks."""
        analyzed = self.analyze(tracks, cancel_token)
        schedule = self.schedule(analyzed, cancel_token)
        return self.render(schedule, cancel_token)

    def create_mashup_from_sources(
        self, sources: Sequence[str], cancel_token: Optional[CancellationToken] = None
    ) -> MashupResult:
        """Fetch and decode sources, then build the mashup."""
        tracks = self.fetch(sources, cancel_token)
        return self.create_mashup(tracks, cancel_token)

    @staticmethod
    def _require_track_count(items: Sequence) -> None:
        if len(items) < MIN_TRACKS:
            message = f"Select at least {MIN_TRACKS} tracks (got {len(items)})"
            logger.error(message)
            raise InputError(message)


def create_mashup(
    tracks: Sequence[DecodedTrack],
    config: Optional[Union[Config, dict]] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> MashupResult:
    """Build a mashup from decoded tracks with a one-off engine."""
    return MashupEngine(config).create_mashup(tracks, cancel_token)
