from __future__ import annotations

import hashlib
import logging
import os
import threading
import time
from typing import Callable, Optional
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup

from readle import paths as p
from readle.models import DOMAIN, DomainNotAllowedError, FetchError, ScrapeOptions

logger = logging.getLogger(__name__)

HEADERS = {
    'User-Agent': 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36',
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.9',
    'DNT': '1',
    'Connection': 'keep-alive'
}


def make_session() -> requests.Session:
    session = requests.Session()
    session.headers.update(HEADERS)
    return session


def url_hash(url: str) -> str:
    return hashlib.sha256(url.encode()).hexdigest()


class Collector:
    """Fetches Goodreads pages as parsed markup.

    Requests are limited to a single allowed domain. With `options.cache` set,
    bodies are read from and written to `options.cache_dir`, one file per url;
    only successful responses are stored. Each worker thread gets its own
    session.
    """

    def __init__(
        self,
        options: Optional[ScrapeOptions] = None,
        *,
        domain: str = DOMAIN,
        session_factory: Optional[Callable[[], requests.Session]] = None,
    ) -> None:
        self.options = options or ScrapeOptions()
        self.domain = domain
        self.session_factory = session_factory or make_session
        self._local = threading.local()

    @property
    def session(self) -> requests.Session:
        sess = getattr(self._local, "session", None)
        if sess is None:
            sess = self.session_factory()
            self._local.session = sess
        return sess

    def check_allowed(self, url: str) -> None:
        host = urlparse(url).hostname or ""
        if host != self.domain:
            raise DomainNotAllowedError(f"Refusing to fetch {url}: only {self.domain} is allowed")

    def cache_path(self, url: str) -> str:
        return os.path.join(self.options.cache_dir, f"{url_hash(url)}.html")

    def _read_cache(self, url: str) -> Optional[str]:
        path = self.cache_path(url)
        if not os.path.exists(path):
            return None
        try:
            age = time.time() - os.path.getmtime(path)
            if age >= self.options.cache_max_age.total_seconds():
                logger.debug(f"cache expired | url={url}")
                return None
            with open(path, encoding="utf-8") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"cache read failed | url={url} | err={e!r}")
            return None

    def _write_cache(self, url: str, body: str) -> None:
        p.ensure_dir(self.options.cache_dir)
        with open(self.cache_path(url), "w", encoding="utf-8") as f:
            f.write(body)

    def fetch_text(self, url: str) -> str:
        self.check_allowed(url)

        if self.options.cache:
            cached = self._read_cache(url)
            if cached is not None:
                logger.debug(f"cache hit | url={url}")
                return cached

        logger.debug(f"request | method=GET | url={url}")
        try:
            response = self.session.get(url, timeout=self.options.timeout_s)
            response.raise_for_status()
        except requests.RequestException as e:
            raise FetchError(f"Request failed: {url} error={e}") from e

        body = response.text
        if self.options.cache:
            try:
                self._write_cache(url, body)
            except OSError as e:
                # the fetched page is still good
                logger.warning(f"cache write failed | url={url} | err={e!r}")
        return body

    def fetch(self, url: str) -> BeautifulSoup:
        return BeautifulSoup(self.fetch_text(url), 'html.parser')
