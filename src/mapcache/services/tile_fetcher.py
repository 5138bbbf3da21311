import logging
import re
import threading
import time
from typing import Callable, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from mapcache.exceptions.tile_downloader_exceptions import NetworkError
from mapcache.interfaces.tile_pipeline import ITileFetcher
from mapcache.models.download_config import (
    DEFAULT_BACKOFF,
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT,
    DEFAULT_USER_AGENT,
)

logger = logging.getLogger(__name__)

_ACCESS_TOKEN = re.compile(r'access_token=[^&\s\'")]+')


class RetryingFetcher(ITileFetcher):
    """HTTP tile fetcher with bounded retries and linear backoff.

    Attempt ``k`` that fails (and is not the last) is followed by a pause of
    ``k * backoff`` seconds. ``sleep`` can be replaced to test the timing
    without waiting.
    """

    def __init__(self, retries: int = DEFAULT_RETRIES, timeout: float = DEFAULT_TIMEOUT,
                 backoff: float = DEFAULT_BACKOFF, user_agent: str = DEFAULT_USER_AGENT,
                 pool_size: int = 20, sleep: Callable[[float], None] = time.sleep):
        self.retries = max(1, retries)
        self.timeout = timeout
        self.backoff = backoff
        self.user_agent = user_agent
        self.pool_size = pool_size
        self.sleep = sleep
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._sessions_lock = threading.Lock()

    def create_session(self) -> requests.Session:
        """Create pooled session; retries happen in fetch(), not in urllib3"""
        session = requests.Session()

        adapter = HTTPAdapter(
            max_retries=Retry(total=0, raise_on_status=False),
            pool_connections=self.pool_size,
            pool_maxsize=self.pool_size
        )

        session.mount("http://", adapter)
        session.mount("https://", adapter)

        return session

    def _get_session(self) -> requests.Session:
        # requests.Session is not guaranteed thread-safe, so one per worker thread
        session = getattr(self._local, 'session', None)
        if session is None:
            session = self.create_session()
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    def close(self) -> None:
        """Close every session opened by the worker threads"""
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()
        self._local = threading.local()

    def get_headers(self) -> Dict[str, str]:
        return {'User-Agent': self.user_agent}

    def fetch(self, url: str) -> bytes:
        """Fetch tile bytes, raising NetworkError once every attempt has failed"""
        last_error: Optional[Exception] = None

        for attempt in range(1, self.retries + 1):
            try:
                return self._fetch_once(url)
            except (requests.RequestException, NetworkError) as e:
                last_error = e
                if attempt < self.retries:
                    delay = attempt * self.backoff
                    logger.debug("Attempt %d/%d for %s failed (%s), retrying in %.1fs",
                                 attempt, self.retries, redact(url), redact(str(e)), delay)
                    self.sleep(delay)

        # requests errors quote the full URL, token included
        raise NetworkError(
            redact(f"Failed to fetch {url} after {self.retries} attempt(s): {last_error}"),
            attempts=self.retries,
            cause=last_error,
        )

    def _fetch_once(self, url: str) -> bytes:
        response = self._get_session().get(url, headers=self.get_headers(), timeout=self.timeout)
        response.raise_for_status()

        content = response.content
        # Reject empty content to avoid creating zero-byte tiles
        if not content:
            raise NetworkError(f"Empty content received from {redact(url)}")
        return content


def redact(text: str) -> str:
    """Hide access tokens in log and error messages"""
    return _ACCESS_TOKEN.sub('access_token=***', text)
