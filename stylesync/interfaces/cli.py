import argparse
import logging
import sys
import time
from typing import List, Optional

from stylesync.application.pipeline import BandSyncPipeline, RetryPolicy, StyleSyncPipeline, read_artists
from stylesync.crosscutting.config import ConfigError, Settings, load_settings
from stylesync.crosscutting.logging import setup_logging
from stylesync.domain.entities import StyleFilter, SyncResult
from stylesync.domain.errors import StyleSyncError
from stylesync.infrastructure.auth import SpotifyAuthorizer
from stylesync.infrastructure.providers.discogs import DiscogsCatalog
from stylesync.infrastructure.providers.spotify import SpotifyProvider


class CLI:
    """Command Line Interface for StyleSync."""

    def __init__(self):
        """Initialize CLI."""
        self.parser = self._create_parser()
        self._start_time = None

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create argument parser."""
        parser = argparse.ArgumentParser(
            prog='stylesync',
            description='Fill a Spotify playlist with albums discovered by style and year, '
                        'or with the latest album of each artist in a file'
        )
        parser.add_argument('-p', '--playlist', dest='playlist_id', help='Spotify playlist ID')
        parser.add_argument('-s', '--style', help='Discogs style, e.g. "Doom Metal"')
        parser.add_argument('-y', '--year', help='Release year')
        parser.add_argument(
            '-E', '--exclude-styles',
            default='',
            help='Comma-separated Discogs style substrings to exclude'
        )
        parser.add_argument('-f', '--file', help='File with one artist name per line')
        parser.add_argument(
            '-v', '--verbose',
            action='store_true',
            help='Log why each release or album is skipped'
        )
        parser.add_argument(
            '--log-level',
            choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
            default='INFO',
            help='Set logging level'
        )
        parser.add_argument('--log-file', help='Also write logs to this file')
        parser.add_argument('--json-logs', action='store_true', help='Emit one JSON object per log line')
        parser.add_argument('--env-file', help='Path to a .env file (default: search for .env)')
        return parser

    def _validate_arguments(self, args: argparse.Namespace) -> None:
        """Validate CLI arguments."""
        if not args.playlist_id:
            raise ValueError("playlist id must be set")
        if args.file:
            return
        if not args.style or not args.year:
            raise ValueError("playlist id, style and year must be set")

    @staticmethod
    def _parse_excluded(raw: str) -> List[str]:
        return [s.strip() for s in (raw or '').split(',') if s.strip()]

    def _get_access_token(self, settings: Settings) -> str:
        if settings.spotify_access_token:
            return settings.spotify_access_token
        settings.require_spotify_client()
        authorizer = SpotifyAuthorizer(
            settings.spotify_client_id,
            settings.spotify_client_secret,
            settings.spotify_redirect_uri,
        )
        return authorizer.get_access_token()

    def _create_streaming_provider(self, settings: Settings) -> SpotifyProvider:
        return SpotifyProvider(self._get_access_token(settings))

    def _create_catalog(self, settings: Settings) -> DiscogsCatalog:
        return DiscogsCatalog(
            token=settings.require_discogs(),
            user_agent=settings.user_agent,
            page_delay=settings.page_delay,
        )

    def _sync_style(self, args: argparse.Namespace, settings: Settings) -> SyncResult:
        catalog = self._create_catalog(settings)
        streaming = self._create_streaming_provider(settings)
        pipeline = StyleSyncPipeline(
            catalog=catalog,
            streaming=streaming,
            retry_policy=RetryPolicy(attempts=settings.retry_attempts, delay=settings.retry_delay),
        )
        style_filter = StyleFilter(
            style=args.style,
            year=args.year,
            excluded_styles=frozenset(self._parse_excluded(args.exclude_styles)),
            min_owners=settings.min_owners,
        )
        return pipeline.run(style_filter, args.playlist_id)

    def _sync_bands(self, args: argparse.Namespace, settings: Settings) -> SyncResult:
        artists = read_artists(args.file)
        streaming = self._create_streaming_provider(settings)
        pipeline = BandSyncPipeline(streaming, pause=settings.page_delay)
        return pipeline.run(artists, args.playlist_id)

    def _print_summary(self, result: SyncResult) -> None:
        print(f"Playlist {result.playlist_id}: {result.tracks_added} tracks added from "
              f"{result.albums_added} albums ({result.albums_skipped} skipped, "
              f"{result.albums_dropped} dropped, {result.candidates} candidates)")
        for title in result.dropped_titles:
            print(f"  dropped: {title}")

    def _cleanup_resources(self) -> None:
        """Log total execution time."""
        logger = logging.getLogger(__name__)
        if self._start_time:
            duration = time.time() - self._start_time
            logger.debug(f"CLI execution time: {duration:.2f}s")

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Run the CLI and return the process exit status."""
        self._start_time = time.time()
        args = self.parser.parse_args(argv)
        level = 'DEBUG' if args.verbose else args.log_level
        setup_logging(level, log_file=args.log_file, json_format=args.json_logs)
        logger = logging.getLogger(__name__)

        try:
            self._validate_arguments(args)
            settings = load_settings(args.env_file)

            if args.file:
                result = self._sync_bands(args, settings)
            else:
                result = self._sync_style(args, settings)

            self._print_summary(result)
            return 0

        except KeyboardInterrupt:
            logger.warning("Operation cancelled by user")
            return 130
        except (ValueError, ConfigError, StyleSyncError, OSError) as e:
            logger.error(f"{e}")
            return 1
        finally:
            self._cleanup_resources()


def main():
    """Main entry point."""
    sys.exit(CLI().run())


if __name__ == '__main__':
    main()
