"""HTTP client for the AdGuard Home statistics endpoint."""
from typing import List, Optional
import logging
import threading

import requests
from pydantic import ValidationError

from adguard_exporter.errors import FetchError
from adguard_exporter.stats import StatsPayload

logger = logging.getLogger(__name__)

STATS_PATH = "/control/stats"


class AdGuardStatsClient:
    """Fetches statistics from a single AdGuard Home instance.

    Scrapes run on the API's worker threads, and ``requests.Session`` is not
    safe to share between them, so each thread gets its own session unless
    one is passed in.
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.auth = (username, password)
        self.timeout = timeout

        self._shared_session = session
        if session is not None:
            session.auth = self.auth
        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._sessions_lock = threading.Lock()

    @property
    def stats_url(self) -> str:
        return f"{self.base_url}{STATS_PATH}"

    @property
    def http(self) -> requests.Session:
        """Session for the calling thread."""
        if self._shared_session is not None:
            return self._shared_session

        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.auth = self.auth
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    def fetch(self) -> StatsPayload:
        """
        Query the statistics endpoint once.

        Returns:
            The parsed payload

        Raises:
            FetchError: on network errors, non-2xx responses, or a body that is
                not a JSON object
        """
        url = self.stats_url
        try:
            resp = self.http.get(url, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.HTTPError as e:
            raise FetchError(f"GET {url} returned {e.response.status_code}") from e
        except requests.RequestException as e:
            # Also covers invalid JSON bodies (requests.JSONDecodeError)
            raise FetchError(f"GET {url} failed: {e}") from e

        try:
            payload = StatsPayload.model_validate(data)
        except ValidationError as e:
            raise FetchError(f"Unexpected response body from {url}: {e}") from e

        logger.debug(f"Fetched stats from {url}")
        return payload

    def close(self):
        """Release pooled connections of every session."""
        if self._shared_session is not None:
            self._shared_session.close()
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()
