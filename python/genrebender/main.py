#!/usr/bin/env python3
"""
GenreBender - look up genres for audio files on MusicBrainz.

Usage:
    python -m genrebender check /path/to/file_or_folder [options]
    python -m genrebender add /path/to/file_or_folder [options]
"""

import argparse
import logging
import os
import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional

from genrebender import __version__
from genrebender.config import (
    GenreBenderConfig, eprint, load_config, validate_config
)
from genrebender.disk_cache import DiskCache
from genrebender.exceptions import ConfigurationError, GenreBenderError
from genrebender.http_fetcher import CancelToken, HttpFetcher
from genrebender.models import ProcessingStats, ResolutionResult, ResolutionStatus
from genrebender.musicbrainz_client import MusicBrainzClient
from genrebender.orchestrator import GenreResolver
from genrebender.tag_handler import TagHandler


def setup_logging(verbose: bool = False) -> None:
    """Configure a console handler for the package loggers."""
    logger = logging.getLogger("genrebender")
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(console_handler)


def build_resolver(config: GenreBenderConfig) -> GenreResolver:
    """Wire the fetcher, client, and cache described by `config`."""
    fetcher = HttpFetcher(
        config.user_agent,
        timeout=config.request_timeout,
        max_attempts=config.max_attempts,
    )
    return GenreResolver(MusicBrainzClient(fetcher), DiskCache(config.cache), config)


class GenreProcessor:
    """Runs the resolver over a file or folder and reports per item."""

    def __init__(self, resolver: GenreResolver, tag_handler: TagHandler,
                 args: argparse.Namespace, cancel: Optional[CancelToken] = None):
        """
        Initialize processor.

        Args:
            resolver: Shared resolution orchestrator
            tag_handler: Local tag reader/writer
            args: CLI arguments
            cancel: Token set on Ctrl-C to abort in-flight requests
        """
        self.resolver = resolver
        self.tag_handler = tag_handler
        self.args = args
        self.cancel = cancel or CancelToken()
        self.stats = ProcessingStats()
        self._lock = threading.Lock()

    @property
    def writes_back(self) -> bool:
        # Write back only when check-only is false
        return self.args.command == "add" and not self.args.check_only

    def process(self, path: str) -> ProcessingStats:
        """
        Main entry point for processing.

        Args:
            path: Path to process (file or folder)
        """
        path_obj = Path(path)

        if path_obj.is_file():
            self._process_file(str(path_obj), single=True)
        elif path_obj.is_dir():
            files = self._discover_audio_files(path_obj, self.args.recursive)
            if not files:
                eprint(f"No audio files found in: {path}")
            self._process_files(files)
        else:
            eprint(f"Path not found: {path}")
            self.stats.errors.append(f"{path}: not found")

        return self.stats

    def _discover_audio_files(self, folder: Path, recursive: bool) -> List[str]:
        """Supported audio files in `folder`, sorted by path."""
        candidates = folder.rglob("*") if recursive else folder.iterdir()
        return sorted(
            str(p) for p in candidates
            if p.is_file() and TagHandler.is_supported(str(p))
        )

    def _process_files(self, files: List[str]) -> None:
        jobs = max(1, self.args.jobs)
        try:
            if jobs == 1:
                for i, file_path in enumerate(files):
                    result = self._process_file(file_path)
                    if i + 1 < len(files):
                        self._pause_after(result)
            else:
                with ThreadPoolExecutor(max_workers=jobs) as executor:
                    list(executor.map(self._process_file_and_pause, files))
        except KeyboardInterrupt:
            self.cancel.cancel()
            raise

    def _process_file_and_pause(self, file_path: str) -> Optional[ResolutionResult]:
        result = self._process_file(file_path)
        self._pause_after(result)
        return result

    def _pause_after(self, result: Optional[ResolutionResult]) -> None:
        """Be polite to MusicBrainz between items that hit the network."""
        if result is None or result.from_cache or result.status == ResolutionStatus.SKIPPED:
            return
        self.cancel.wait(self.resolver.config.item_delay)

    def _process_file(self, file_path: str,
                      single: bool = False) -> Optional[ResolutionResult]:
        """Resolve one file; errors are recorded, never raised."""
        name = Path(file_path).name
        with self._lock:
            self.stats.total_files += 1

        try:
            query = self.tag_handler.read_query(file_path)
            if self.args.verbose:
                print(f"[{name}] Title: {query.title} | Album: {query.album} | "
                      f"Artist: {query.artist} | Length: {query.duration_ms} ms")
            result = self.resolver.resolve(query, cancel=self.cancel)
        except GenreBenderError as e:
            eprint(f"[{name}] error: {e}")
            with self._lock:
                self.stats.errors.append(f"{name}: {e}")
            return None

        written = False
        if result.matched and result.genres and self.writes_back:
            written = self.tag_handler.write_genres(
                file_path, result.genres, replace=not self.args.append
            )
            if not written:
                with self._lock:
                    self.stats.errors.append(f"{name}: could not write genres")

        with self._lock:
            self._record(result, written)
            self._report(name, result, single)
        return result

    def _record(self, result: ResolutionResult, written: bool) -> None:
        if result.status == ResolutionStatus.MATCHED:
            self.stats.files_matched += 1
        elif result.status == ResolutionStatus.NO_MATCH:
            self.stats.files_unmatched += 1
        else:
            self.stats.files_skipped += 1
        if result.from_cache:
            self.stats.cache_hits += 1
        if written:
            self.stats.tags_written += 1

    def _report(self, name: str, result: ResolutionResult, single: bool) -> None:
        if result.status == ResolutionStatus.SKIPPED:
            print(f"[{name}] :: skipped (no artist or title tags)")
            return
        if result.status == ResolutionStatus.NO_MATCH:
            print(f"[{name}] :: no match")
            return

        if self.args.verbose:
            origin = "cache (stale)" if result.stale else "cache" if result.from_cache else "MusicBrainz"
            source = result.source.value if result.source else "?"
            print(f"[{name}] MBID: {result.mbid} ({source}, from {origin})")
        if single:
            print(f"genres: {','.join(result.genres)}")
            print(f"tags: {','.join(result.tags)}")
        else:
            print(f"[{name}] :: {','.join(result.genres)}")


def show_summary(stats: ProcessingStats) -> None:
    """Display final processing summary."""
    eprint("")
    eprint(f"Files processed:  {stats.total_files}")
    eprint(f"Matched:          {stats.files_matched} ({stats.cache_hits} from cache)")
    eprint(f"No match:         {stats.files_unmatched}")
    eprint(f"Skipped:          {stats.files_skipped}")
    eprint(f"Genres written:   {stats.tags_written}")

    if stats.errors:
        eprint(f"\nErrors ({len(stats.errors)}):")
        for error in stats.errors[:10]:  # Limit displayed errors
            eprint(f"  - {error}")
        if len(stats.errors) > 10:
            eprint(f"  ... and {len(stats.errors) - 10} more errors")


def build_parser() -> argparse.ArgumentParser:
    """Build argument parser."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "path",
        help="Path to audio file or folder to process"
    )
    common.add_argument(
        "--verbose", "-V",
        action="store_true",
        help="Show tags read, resolved MBIDs, and debug logging"
    )
    common.add_argument(
        "--recursive", "-r",
        action="store_true",
        help="Descend into subfolders when PATH is a folder"
    )
    common.add_argument(
        "--jobs", "-j",
        type=int,
        default=1,
        help="Number of files to resolve in parallel (default: 1)"
    )
    common.add_argument(
        "--env-file",
        default=".env",
        help="Path to .env file (default: ./.env)"
    )
    common.add_argument(
        "--no-summary",
        action="store_true",
        help="Do not print the summary for folders"
    )

    parser = argparse.ArgumentParser(
        prog="genrebender",
        description="Resolve audio files to MusicBrainz recordings and look up their genres.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show genres for one file
  genrebender check song.flac

  # Show genres for every file in an album folder
  genrebender check /path/to/album --verbose

  # Write genres into the files
  genrebender add /path/to/album
"""
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser(
        "check", aliases=["c"], parents=[common],
        help="Look up genres without modifying files",
    )

    add = subparsers.add_parser(
        "add", aliases=["a"], parents=[common],
        help="Look up genres and write them into the files",
    )
    add.add_argument(
        "--check-only",
        action="store_true",
        help="Resolve genres but do not write them"
    )
    add.add_argument(
        "--append",
        action="store_true",
        help="Keep existing genre values and append new ones"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    args.command = {"c": "check", "a": "add"}.get(args.command, args.command)
    if args.command == "check":
        args.check_only = True
        args.append = False

    if not os.path.exists(args.path):
        parser.error(f"Path does not exist: {args.path}")
    if args.jobs < 1:
        parser.error("--jobs must be at least 1")

    setup_logging(args.verbose)

    try:
        config = load_config(args.env_file)
    except ConfigurationError as e:
        eprint(f"\n{e}\n")
        sys.exit(1)

    problems = validate_config(config)
    if problems:
        eprint(f"\nInvalid configuration: {', '.join(problems)}\n")
        sys.exit(1)

    cancel = CancelToken()
    processor = GenreProcessor(build_resolver(config), TagHandler(), args, cancel)

    try:
        stats = processor.process(args.path)
    except KeyboardInterrupt:
        cancel.cancel()
        print("\nInterrupted by user.")
        sys.exit(1)
    finally:
        processor.resolver.client.fetcher.close()

    if Path(args.path).is_dir() and not args.no_summary:
        show_summary(stats)
    if stats.errors:
        sys.exit(1)


if __name__ == "__main__":
    main()
