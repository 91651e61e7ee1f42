# cli.py

import argparse
import logging
import sys
from pathlib import Path

from tqdm import tqdm

from config import SystemConfig
from core.errors import ConfigError, ExternalToolError
from core.scanner import DuplicateScanner
from utils.logging_config import setup_logging
from utils.report_generator import DuplicateReportGenerator

logger = logging.getLogger(__name__)

USAGE_BANNER = """Usage: xray /some/dir/full/of/videos
xray indexes video files by their perceptual hash and finds duplicates.
This means files are not compared byte for byte, but by their visual content.
It will/should find dupes of videos, even when they are encoded in different formats and resolutions."""

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_TOOL_FAILURE = 2
EXIT_INTERRUPTED = 130


def format_result(result, algorithm: str = "sha1", verifier=None) -> str:
    """Render one scanned file and its verdicts as report lines"""
    lines = [f'Indexing "{result.path}" - size: {result.size}']
    lines.append(
        f"   --> Duration: {int(result.metadata.duration)} - bitrate: {result.metadata.bit_rate}"
    )

    for verdict in result.verdicts:
        if verdict.is_exact:
            lines.append(f'   --> Exact copy of "{verdict.owner}" - {algorithm}: {verdict.digest}')
        else:
            owner_size = verifier.file_size(verdict.owner) if verifier is not None else -1
            lines.append(
                f'   --> Perceptual dupe of "{verdict.owner}" - size: {owner_size} '
                f'(scores {verdict.score} out of {verdict.total})'
            )

    return "\n".join(lines)


def scan_command(args, config: SystemConfig) -> int:
    """Scan a directory tree and print one block per indexed video"""
    root = Path(args.directory)
    if not root.is_dir():
        print(f"Error: {args.directory} is not a directory", file=sys.stderr)
        return EXIT_USAGE

    scanner = DuplicateScanner(config, show_progress=not args.no_progress)
    results = []

    try:
        for result in scanner.scan(str(root.resolve())):
            tqdm.write(format_result(result, config.matching.digest_algorithm, scanner.verifier))
            if result.verdicts:
                results.append(result)
    except ExternalToolError as e:
        logger.error("Aborting scan, frame extraction is unavailable: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_TOOL_FAILURE

    summary = scanner.summary
    print(f"\nIndexed {summary.files_indexed} videos ({summary.frames_indexed} frames): "
          f"{summary.exact_duplicates} exact and {summary.perceptual_duplicates} perceptual duplicates")

    if args.report:
        DuplicateReportGenerator().generate_report(results, args.report, summary=summary)
        print(f"Report saved to: {args.report}")

    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="xray",
        description="Find duplicate videos by the perceptual hash of sampled frames"
    )
    parser.add_argument('directory', nargs='?', help='Directory to scan recursively')
    parser.add_argument('-f', '--frames', type=int,
                        help='Frames to sample per video (default 5)')
    parser.add_argument('-d', '--hamming-distance', type=int,
                        help='Frames match below this Hamming distance (default 16)')
    parser.add_argument('-t', '--threshold', type=float,
                        help='Fraction of frames that must match (default 0.6)')
    parser.add_argument('--backend', choices=['ffmpeg', 'opencv'],
                        help='Frame extraction backend (default ffmpeg)')
    parser.add_argument('-w', '--workers', type=int,
                        help='Parallel frame extraction workers (default 1)')
    parser.add_argument('--first-hit-only', action='store_true',
                        help='Count at most one match per sampled frame')
    parser.add_argument('-c', '--config', default='config.yaml',
                        help='YAML configuration file')
    parser.add_argument('-r', '--report', help='Write a report (.json or .html)')
    parser.add_argument('--log-dir', help='Directory for log files')
    parser.add_argument('--no-log-file', action='store_true',
                        help='Log to the console only')
    parser.add_argument('--no-progress', action='store_true',
                        help='Hide the progress bar')
    return parser


def load_config(args) -> SystemConfig:
    """Config file first, then command line flags on top"""
    config = SystemConfig.load(args.config)
    return config.with_overrides(**{
        'n_workers': args.workers,
        'log_dir': args.log_dir,
        'frame_sampling.frame_count': args.frames,
        'frame_sampling.backend': args.backend,
        'matching.hamming_threshold': args.hamming_distance,
        'matching.match_ratio_threshold': args.threshold,
        'matching.count_every_hit': False if args.first_hit_only else None,
    })


def main_cli(argv=None) -> int:
    """Main CLI entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.directory is None:
        print(USAGE_BANNER)
        return EXIT_USAGE

    try:
        config = load_config(args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE

    setup_logging(config.log_level, None if args.no_log_file else config.log_dir)
    logger.info("Scanning %s with %d frames, distance < %d, ratio >= %.2f",
                args.directory,
                config.frame_sampling.frame_count,
                config.matching.hamming_threshold,
                config.matching.match_ratio_threshold)

    try:
        return scan_command(args, config)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main_cli())
