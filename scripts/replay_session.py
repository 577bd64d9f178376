#!/usr/bin/env python
"""
Batch Session Replay

Replays recorded skeleton sessions through the spelling pipeline:
1. Load each recording
2. Run every frame through clock positions, letter lookup and debounce
3. Collect the committed symbols and the final word
4. Write a summary file

Usage:
    python scripts/replay_session.py --config configs/default.yaml --input_dir sessions/
"""

import argparse
from pathlib import Path
import json
from tqdm import tqdm
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from semaphore_speller.pipeline import SpellingPipeline
from semaphore_speller.pose.joints import SkeletonRecordingLoader
from semaphore_speller.utils.config import load_config, Config
from semaphore_speller.utils.logging_utils import setup_logging, get_logger

logger = get_logger(__name__)


def replay_recording(
    path: Path,
    loader: SkeletonRecordingLoader,
    config: Config
) -> dict:
    """Replay a single recording."""
    result = {
        'id': path.stem,
        'success': False,
        'error': None
    }

    try:
        frames = loader.load(path)

        pipeline = SpellingPipeline(config, use_timer=False)
        commits = []
        try:
            for frame in frames:
                frame_result = pipeline.process_frame(frame, now=frame.timestamp)
                if frame_result.committed is not None:
                    commits.append({
                        'frame_idx': frame_result.frame_idx,
                        'timestamp': frame.timestamp,
                        'symbol': frame_result.committed.value
                    })
        finally:
            pipeline.close()

        result['frames'] = len(frames)
        result['commits'] = commits
        result['word'] = pipeline.word
        result['completed_words'] = pipeline.completed_words
        result['success'] = True

    except (OSError, ValueError) as e:
        result['error'] = str(e)
        logger.error(f"Error replaying {path.name}: {e}")

    return result


def main():
    parser = argparse.ArgumentParser(description="Replay recorded arm semaphore sessions")
    parser.add_argument(
        "--config",
        type=str,
        default="configs/default.yaml",
        help="Configuration file"
    )
    parser.add_argument(
        "--input_dir",
        type=str,
        required=True,
        help="Directory of recorded sessions (*.json)"
    )
    parser.add_argument(
        "--output",
        type=str,
        default="./outputs/replay_summary.json",
        help="Summary file"
    )
    parser.add_argument(
        "--max_sessions",
        type=int,
        default=None,
        help="Maximum sessions to replay"
    )

    args = parser.parse_args()

    setup_logging(use_tqdm=True)
    config = load_config(args.config)
    loader = SkeletonRecordingLoader(fps=config.session.fps)

    paths = sorted(Path(args.input_dir).glob("*.json"))
    if args.max_sessions:
        paths = paths[:args.max_sessions]

    all_results = []
    for path in tqdm(paths, desc="Replaying"):
        result = replay_recording(path, loader, config)
        if result['success']:
            logger.info(f"{result['id']}: {result['word']!r}")
        all_results.append(result)

    # Summary
    success_count = sum(1 for r in all_results if r['success'])
    logger.info("Replay complete!")
    logger.info(f"Success: {success_count}/{len(all_results)}")

    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w') as f:
        json.dump(all_results, f, indent=2)
    logger.info(f"Summary saved to: {output_path}")


if __name__ == "__main__":
    main()
