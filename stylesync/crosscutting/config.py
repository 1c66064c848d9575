import os
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, TypeVar

from dotenv import load_dotenv


T = TypeVar('T')

DEFAULT_REDIRECT_URI = 'http://localhost:3000'
DEFAULT_USER_AGENT = 'StyleSync/0.1'


class ConfigError(Exception):
    """Configuration error."""
    pass


@dataclass(frozen=True)
class Settings:
    """Credentials and tunables for one run, passed explicitly to every component."""

    spotify_client_id: Optional[str] = None
    spotify_client_secret: Optional[str] = None
    spotify_redirect_uri: str = DEFAULT_REDIRECT_URI
    spotify_access_token: Optional[str] = None
    discogs_token: Optional[str] = None
    user_agent: str = DEFAULT_USER_AGENT
    page_delay: float = 1.0
    retry_attempts: int = 3
    retry_delay: float = 30.0
    min_owners: int = 10

    def require_discogs(self) -> str:
        """Return the Discogs token or fail."""
        if not self.discogs_token:
            raise ConfigError("DISCOGS_TOKEN not found in environment")
        return self.discogs_token

    def require_spotify_client(self) -> None:
        """Ensure client credentials for the authorization flow are present."""
        if not self.spotify_client_id:
            raise ConfigError("SPOTIFY_CLIENT_ID not found in environment")
        if not self.spotify_client_secret:
            raise ConfigError("SPOTIFY_CLIENT_SECRET not found in environment")


def _read(env: Mapping[str, str], name: str, default: T, convert: Callable[[str], T]) -> T:
    raw = env.get(name)
    if raw is None or not str(raw).strip():
        return default
    try:
        return convert(str(raw).strip())
    except ValueError:
        raise ConfigError(f"Invalid value for {name}: {raw!r}")


def _optional(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(name)
    if value is None or not str(value).strip():
        return None
    return str(value).strip()


def settings_from_env(env: Mapping[str, str]) -> Settings:
    """Build settings from an environment mapping."""
    settings = Settings(
        spotify_client_id=_optional(env, 'SPOTIFY_CLIENT_ID'),
        spotify_client_secret=_optional(env, 'SPOTIFY_CLIENT_SECRET'),
        spotify_redirect_uri=_optional(env, 'SPOTIFY_REDIRECT_URI') or DEFAULT_REDIRECT_URI,
        spotify_access_token=_optional(env, 'SPOTIFY_ACCESS_TOKEN'),
        discogs_token=_optional(env, 'DISCOGS_TOKEN'),
        user_agent=_optional(env, 'STYLESYNC_USER_AGENT') or DEFAULT_USER_AGENT,
        page_delay=_read(env, 'STYLESYNC_PAGE_DELAY', 1.0, float),
        retry_attempts=_read(env, 'STYLESYNC_RETRY_ATTEMPTS', 3, int),
        retry_delay=_read(env, 'STYLESYNC_RETRY_DELAY', 30.0, float),
        min_owners=_read(env, 'STYLESYNC_MIN_OWNERS', 10, int),
    )
    if settings.retry_attempts < 1:
        raise ConfigError("STYLESYNC_RETRY_ATTEMPTS must be at least 1")
    if settings.page_delay < 0 or settings.retry_delay < 0:
        raise ConfigError("Delays must not be negative")
    return settings


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Load settings from the process environment after reading a .env file.

    Variables already set in the environment win over the file.
    """
    if env_file and not os.path.exists(env_file):
        raise ConfigError(f"Environment file not found: {env_file}")
    load_dotenv(env_file, override=False)
    return settings_from_env(os.environ)
