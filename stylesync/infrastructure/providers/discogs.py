import logging
import time
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

import requests

from stylesync.domain.entities import MasterRelease, Release
from stylesync.domain.errors import DecodeError, TransportError, UnexpectedStatus
from stylesync.domain.ports import CatalogProvider

logger = logging.getLogger(__name__)

DISCOGS_SEARCH_URL = "https://api.discogs.com/database/search"
DEFAULT_USER_AGENT = "StyleSync/0.1"


class DiscogsCatalog(CatalogProvider):
    """Discogs database client used for album discovery.

    Every request is followed by a fixed pause to stay under the service's
    rate limit. Failures are never retried here.
    """

    def __init__(self,
                 token: str,
                 user_agent: str = DEFAULT_USER_AGENT,
                 page_delay: float = 1.0,
                 per_page: int = 100,
                 session: Optional[requests.Session] = None,
                 sleep: Callable[[float], None] = time.sleep,
                 timeout: float = 30.0):
        """Initialize Discogs client.

        Args:
            token: Discogs personal access token, sent as a query parameter
            user_agent: User-Agent header value required by Discogs
            page_delay: Seconds to wait after each request
            per_page: Results per search page
            session: Optional preconfigured requests session
            sleep: Sleep function, replaceable in tests
            timeout: Per-request timeout in seconds
        """
        self.token = token
        self.page_delay = page_delay
        self.per_page = per_page
        self.timeout = timeout
        self._sleep = sleep
        self._session = session or requests.Session()
        self._session.headers.update({
            'User-Agent': user_agent,
            'Accept': 'application/json',
        })

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            response = self._session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"Request to {url} failed: {e}") from e
        finally:
            self._sleep(self.page_delay)

        if response.status_code != 200:
            raise UnexpectedStatus(response.status_code, response.text, url)
        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(f"Malformed response from {url}: {e}") from e

    def search_page(self, style: str, year: str, url: Optional[str] = None) -> Tuple[List[Release], Optional[str]]:
        """Fetch one page of search results.

        Args:
            style: Discogs style, e.g. "Doom Metal"
            year: Release year
            url: Next-page URL from a previous page; None for the first page

        Returns:
            Releases on the page and the next page URL (None on the last page)
        """
        if url is None:
            url = DISCOGS_SEARCH_URL
            params = {
                'type': 'release',
                'style': style,
                'format': 'Album',
                'year': year,
                'token': self.token,
                'per_page': self.per_page,
            }
        else:
            # Pagination links already carry every query parameter.
            params = None

        logger.info(f"fetching {url}" + (f" (style={style}, year={year})" if params else ""))
        data = self._get(url, params)

        try:
            releases = [Release.from_api(item) for item in data.get('results') or []]
        except (TypeError, ValueError, AttributeError) as e:
            raise DecodeError(f"Unexpected search result shape: {e}") from e
        pagination = data.get('pagination') or {}
        next_url = (pagination.get('urls') or {}).get('next') or None
        return releases, next_url

    def iter_releases(self, style: str, year: str) -> Iterator[Release]:
        url = None
        while True:
            releases, url = self.search_page(style, year, url)
            yield from releases
            if not url:
                break

    def master_release(self, master_url: str) -> MasterRelease:
        data = self._get(master_url, {'token': self.token})
        try:
            return MasterRelease(year=int(data['year']))
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError(f"Master release without a usable year: {master_url}") from e

    def master_year(self, master_url: str) -> int:
        return self.master_release(master_url).year
