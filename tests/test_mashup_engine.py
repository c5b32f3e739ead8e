"""
End-to-end tests for the mashup engine on synthetic beat tracks.
"""

import json
import logging
import struct
from unittest.mock import patch

import numpy as np
import pytest

from automashup import mashup
from automashup.cancel import CancellationToken
from automashup.config import Config
from automashup.errors import InputError, MashupCancelled
from automashup.mashup import MashupEngine, create_mashup
from automashup.models import DecodedTrack, MashupResult
from automashup.render.wav import HEADER_SIZE


SAMPLE_RATE = 7000


def beat_track(track_id, seconds, bpm, amplitude):
    """Mono impulse train; intervals are exact multiples of 100 samples."""
    samples = np.zeros(int(seconds * SAMPLE_RATE))
    interval = int(60 * SAMPLE_RATE / bpm)
    samples[1000::interval] = amplitude
    return DecodedTrack(track_id, SAMPLE_RATE, samples)


@pytest.fixture(scope="module")
def tracks():
    """Louder 140 BPM track first, quieter 100 BPM track second."""
    return [
        beat_track("fast", 35.0, bpm=140, amplitude=1.0),
        beat_track("slow", 40.0, bpm=100, amplitude=0.5),
    ]


@pytest.fixture(scope="module")
def result(tracks):
    return create_mashup(tracks)


@pytest.fixture
def small_config():
    return {
        "schedule": {
            "segment_duration_seconds": 10.0,
            "transition_duration_seconds": 4.0,
            "edge_fade_seconds": 1.0,
        }
    }


class TestCreateMashup:
    """Test the full analyze -> schedule -> render -> encode flow."""

    def test_result_type(self, result):
        assert isinstance(result, MashupResult)

    def test_analysis(self, result):
        bpms = {t.track_id: t.bpm for t in result.tracks}
        assert bpms == {"slow": 100, "fast": 140}

    def test_energy_order(self, result):
        assert [t.track_id for t in result.tracks] == ["slow", "fast"]
        assert result.tracks[0].energy < result.tracks[1].energy

    def test_target_bpm(self, result):
        assert result.target_bpm == 120

    def test_timeline(self, result):
        first, second = result.timeline
        assert (first.start, first.end) == (0.0, 30.0)
        assert (second.start, second.end) == (22.0, 57.0)
        assert result.total_duration == pytest.approx(57.0)

    def test_rendered_buffer(self, result):
        assert result.sample_rate == SAMPLE_RATE
        assert result.samples.shape == (2, 57 * SAMPLE_RATE)
        assert np.all(np.isfinite(result.samples))
        assert np.any(result.samples != 0.0)

    def test_wav_blob(self, result):
        assert len(result.wav) == HEADER_SIZE + 57 * SAMPLE_RATE * 2 * 2
        assert result.wav[:4] == b"RIFF"
        channels, sample_rate = struct.unpack("<HI", result.wav[22:28])
        assert (channels, sample_rate) == (2, SAMPLE_RATE)

    def test_metadata(self, result):
        metadata = result.metadata()
        assert metadata["order"] == ["slow", "fast"]
        assert metadata["target_bpm"] == 120
        assert metadata["total_duration_seconds"] == pytest.approx(57.0)
        assert [t["bpm"] for t in metadata["tracks"]] == [100, 140]
        assert len(metadata["timeline"]) == 2

    def test_save(self, result, tmp_path):
        wav_path, json_path = result.save(str(tmp_path / "out"), "mix")

        assert wav_path.read_bytes() == result.wav
        with open(json_path) as f:
            saved = json.load(f)
        assert saved["order"] == ["slow", "fast"]

    def test_inputs_not_modified(self, tracks, result):
        assert not tracks[0].samples.flags.writeable
        assert tracks[0].samples[0, 1000] == 1.0


class TestMashupEngine:
    """Test engine phases, configuration and failure handling."""

    def test_accepts_config_dict(self, small_config):
        engine = MashupEngine(small_config)
        assert isinstance(engine.config, Config)
        assert engine.config.get("schedule", "segment_duration_seconds") == 10.0

    def test_config_dict_not_modified(self, small_config):
        """Defaults are filled into a copy, never into the caller's dict."""
        MashupEngine(small_config)
        assert set(small_config) == {"schedule"}
        assert len(small_config["schedule"]) == 3

    def test_small_schedule(self, small_config):
        tracks = [DecodedTrack(name, 2000, np.zeros(12 * 2000)) for name in ("a", "b")]
        result = MashupEngine(small_config).create_mashup(tracks)

        assert result.total_duration == pytest.approx(18.0)
        assert result.samples.shape == (2, 18 * 2000)
        assert np.all(result.samples == 0.0)

    def test_one_track_rejected(self, tracks):
        with pytest.raises(InputError):
            create_mashup(tracks[:1])

    def test_no_tracks_rejected(self):
        with pytest.raises(InputError):
            create_mashup([])

    def test_schedule_requires_analysis(self, tracks):
        with pytest.raises(InputError):
            MashupEngine().schedule(tracks)

    def test_cancelled(self, tracks):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(MashupCancelled):
            MashupEngine().create_mashup(tracks, token)

    def test_fetch_uses_config(self, tracks):
        config = {"fetch": {"max_workers": 2, "timeout_seconds": 10}}
        with patch.object(mashup, "fetch_tracks", return_value=list(tracks)) as fake:
            fetched = MashupEngine(config).fetch(["https://x/a.mp3", "https://x/b.mp3"])

        assert fetched == list(tracks)
        assert fake.call_args.kwargs["max_workers"] == 2
        assert fake.call_args.kwargs["timeout"] == 10

    def test_fetch_requires_two_sources(self):
        with pytest.raises(InputError):
            MashupEngine().fetch(["https://x/a.mp3"])

    def test_create_from_sources(self, small_config):
        tracks = [DecodedTrack(name, 2000, np.zeros(12 * 2000)) for name in ("a", "b")]
        with patch.object(mashup, "fetch_tracks", return_value=tracks):
            result = MashupEngine(small_config).create_mashup_from_sources(["a.wav", "b.wav"])
        assert [t.track_id for t in result.tracks] == ["a", "b"]


class TestCommandLine:
    """Test the make_mashup entry point."""

    def test_failure_logged_once(self, tmp_path, caplog):
        from scripts.make_mashup import main

        with caplog.at_level(logging.DEBUG):
            code = main(["only-one.wav", "--config", str(tmp_path / "missing.toml")])

        assert code == 1
        assert len([r for r in caplog.records if r.levelno >= logging.ERROR]) == 1

    def test_invalid_config(self, tmp_path, caplog):
        from scripts.make_mashup import main

        path = tmp_path / "bad.toml"
        path.write_text("[render]\nmakeup_gain = 99.0\n")
        with caplog.at_level(logging.INFO):
            code = main(["a.wav", "b.wav", "--config", str(path)])

        assert code == 1
        assert "Invalid config" in caplog.text
