import logging
from typing import Optional

from spotipy.cache_handler import MemoryCacheHandler
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError

from stylesync.domain.errors import StyleSyncError

logger = logging.getLogger(__name__)

PLAYLIST_SCOPES = ['playlist-read-private', 'playlist-modify-public', 'playlist-modify-private']


class SpotifyAuthorizer:
    """Obtains a user access token through the authorization-code flow.

    With a localhost redirect URI spotipy listens on that port for the callback,
    so the user only has to approve the request in the browser. Tokens are kept
    in memory only.
    """

    def __init__(self, client_id: str, client_secret: str, redirect_uri: str,
                 oauth: Optional[SpotifyOAuth] = None):
        self.redirect_uri = redirect_uri
        self._oauth = oauth or SpotifyOAuth(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uri,
            scope=' '.join(PLAYLIST_SCOPES),
            open_browser=True,
            cache_handler=MemoryCacheHandler(),
        )

    def authorize_url(self) -> str:
        return self._oauth.get_authorize_url()

    def get_access_token(self) -> str:
        print(f"To continue, open the following link and approve the request:\n  {self.authorize_url()}")
        try:
            code = self._oauth.get_auth_response()
            token = self._oauth.get_access_token(code, as_dict=False, check_cache=False)
        except SpotifyOauthError as e:
            raise StyleSyncError(f"Spotify authorization failed: {e}") from e
        if not token:
            raise StyleSyncError("Spotify authorization returned no access token")
        logger.info("Spotify authorization completed")
        return token
