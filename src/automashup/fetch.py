"""
Source fetching and decoding.

- http(s) URLs are downloaded with requests to a temporary file
- Anything else is treated as a local path
- Decoding uses aubio at the file's native sample rate and channel count
- Multiple sources are fetched concurrently; order is preserved and the
  first failure aborts the batch
"""

import logging
import os
import tempfile
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import List, Optional, Sequence
from urllib.parse import urlparse

import numpy as np
import requests

from .cancel import CancellationToken, check_cancelled
from .errors import DecodeError, InputError, NetworkError
from .models import DecodedTrack

logger = logging.getLogger(__name__)

DECODE_HOP_SIZE = 4096
DEFAULT_TIMEOUT_SECONDS = 30
DEFAULT_MAX_WORKERS = 4


def _track_id_for(source: str) -> str:
    """Derive a readable track ID from a URL or path."""
    path = urlparse(source).path if _is_remote(source) else source
    return Path(path).stem or source


def _is_remote(source: str) -> bool:
    return urlparse(source).scheme in ("http", "https")


def decode_file(path: str, track_id: Optional[str] = None) -> DecodedTrack:
    """
    Decode an audio file to float PCM.

    Args:
        path: Path to any format aubio can read
        track_id: Identifier for the track (defaults to the file stem)

    Returns:
        DecodedTrack at the file's native sample rate

    Raises:
        DecodeError: If the file cannot be opened or decoded
    """
    track_id = track_id or _track_id_for(path)

    try:
        import aubio
    except ImportError as e:
        raise DecodeError("aubio is required to decode audio files") from e

    try:
        source = aubio.source(str(path), samplerate=0, hop_size=DECODE_HOP_SIZE, channels=0)
    except (RuntimeError, ValueError, OSError) as e:
        raise DecodeError(f"Cannot open {path}: {e}") from e

    try:
        sample_rate = int(source.samplerate)
        blocks = []
        while True:
            frames, read = source.do_multi()
            if read > 0:
                blocks.append(np.array(frames[:, :read], dtype=np.float32))
            if read < DECODE_HOP_SIZE:
                break
    except (RuntimeError, ValueError) as e:
        raise DecodeError(f"Failed decoding {path}: {e}") from e
    finally:
        source.close()

    if not blocks:
        raise DecodeError(f"No audio frames decoded from {path}")

    samples = np.concatenate(blocks, axis=1)
    try:
        track = DecodedTrack(track_id=track_id, sample_rate=sample_rate, samples=samples, source=str(path))
    except InputError as e:
        raise DecodeError(f"Decoded audio from {path} is unusable: {e}") from e
    logger.debug(f"Decoded {track}")
    return track


def _download(url: str, timeout: float) -> str:
    """Download a URL to a temporary file and return its path."""
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        raise NetworkError(f"Failed to fetch {url}: {e}") from e

    suffix = Path(urlparse(url).path).suffix or ".audio"
    with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as tmp:
        tmp.write(response.content)
        logger.debug(f"Downloaded {url} ({len(response.content)} bytes) to {tmp.name}")
        return tmp.name


def fetch_decoded_audio(
    url: str, timeout: float = DEFAULT_TIMEOUT_SECONDS, track_id: Optional[str] = None
) -> DecodedTrack:
    """
    Fetch and decode one source.

    Raises:
        NetworkError: If a remote source cannot be downloaded
        DecodeError: If the bytes cannot be decoded
    """
    track_id = track_id or _track_id_for(url)

    if not _is_remote(url):
        local = urlparse(url).path if url.startswith("file://") else url
        if not os.path.exists(local):
            raise DecodeError(f"Source not found: {local}")
        return decode_file(local, track_id)

    tmp_path = _download(url, timeout)
    try:
        track = decode_file(tmp_path, track_id)
    finally:
        try:
            Path(tmp_path).unlink()
        except OSError as e:
            logger.warning(f"Failed to clean up temp download {tmp_path}: {e}")

    return DecodedTrack(
        track_id=track.track_id, sample_rate=track.sample_rate, samples=track.samples, source=url
    )


def _unique_ids(sources: Sequence[str]) -> List[str]:
    ids = []
    for idx, source in enumerate(sources):
        track_id = _track_id_for(source)
        if track_id in ids:
            track_id = f"{track_id}-{idx + 1}"
        ids.append(track_id)
    return ids


def fetch_tracks(
    sources: Sequence[str],
    max_workers: int = DEFAULT_MAX_WORKERS,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    cancel_token: Optional[CancellationToken] = None,
) -> List[DecodedTrack]:
    """
    Fetch and decode all sources concurrently, preserving input order.

    Every track is required for the timeline, so the first failure cancels
    pending work and is re-raised.

    Returns:
        DecodedTrack list in the same order as `sources`
    """
    check_cancelled(cancel_token, "fetch")
    track_ids = _unique_ids(sources)
    results: List[Optional[DecodedTrack]] = [None] * len(sources)

    workers = max(1, min(max_workers, len(sources)))
    logger.info(f"Fetching {len(sources)} sources ({workers} workers)")

    with ThreadPoolExecutor(max_workers=workers) as executor:
        future_to_index = {
            executor.submit(fetch_decoded_audio, source, timeout, track_id): idx
            for idx, (source, track_id) in enumerate(zip(sources, track_ids))
        }

        try:
            for future in as_completed(future_to_index):
                idx = future_to_index[future]
                results[idx] = future.result()
                logger.info(
                    f"  [{sum(r is not None for r in results)}/{len(sources)}] "
                    f"{track_ids[idx]}: {results[idx].duration:.1f}s @ {results[idx].sample_rate} Hz"
                )
                check_cancelled(cancel_token, "decoding remaining sources")
        except Exception:
            for pending in future_to_index:
                pending.cancel()
            raise

    logger.info(f"✅ Fetched {len(results)} tracks")
    return list(results)
