#!/usr/bin/env python3
"""
Make Mashup Script

Main entrypoint: python src/scripts/make_mashup.py a.mp3 https://host/b.mp3

- Fetches and decodes every source (URLs or local files)
- Analyzes tempo/energy, plans the timeline, renders offline
- Outputs: {name}.wav and {name}.json in the output directory
"""

import argparse
import sys
import logging
from pathlib import Path
from datetime import datetime, timezone

# Add src/ to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from automashup.config import Config, ConfigError
from automashup.errors import MashupError
from automashup.mashup import MashupEngine

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Render a DJ-style mashup from two or more tracks")
    parser.add_argument("sources", nargs="+", help="Audio files or http(s) URLs (at least 2)")
    parser.add_argument("--config", help="Path to automashup.toml")
    parser.add_argument("--output-dir", default="data/mashups", help="Output directory")
    parser.add_argument("--name", help="Output base name (default: mashup-<timestamp>)")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv=None):
    """Main mashup entrypoint."""
    args = _parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        logger.info("🎛️  Creating DJ-style mashup...")

        config = Config.load(args.config)
        logger.info(f"Config loaded: {config}")

        engine = MashupEngine(config)
        result = engine.create_mashup_from_sources(args.sources)

        name = args.name or f"mashup-{datetime.now(timezone.utc).strftime('%Y%m%d-%H%M%S')}"
        wav_path, json_path = result.save(args.output_dir, name)

        logger.info(f"Target BPM: {result.target_bpm}, duration: {result.total_duration:.2f}s")
        for idx, track in enumerate(result.tracks, 1):
            logger.info(f"  {idx}. {track.track_id}: {track.bpm} BPM, energy {track.energy:.4f}")
        logger.info(f"✅ Mashup written: {wav_path} (metadata: {json_path})")
        return 0

    except KeyboardInterrupt:
        logger.warning("Mashup interrupted by user")
        return 130
    except ConfigError as e:
        logger.error(f"Invalid config: {e}")
        return 1
    except MashupError as e:
        # Already reported by the failing phase
        logger.debug(f"Mashup aborted: {e!r}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
