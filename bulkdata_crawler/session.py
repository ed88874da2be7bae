"""
HTTP session creation for the bulk-data crawler.

Provides sessions with:
* A connection pool sized for the configured concurrency
* Keep-alive connection reuse
* Response compression disabled so ``Content-Length`` matches the body
* No automatic retries
"""

import requests
from requests.adapters import HTTPAdapter

from bulkdata_crawler.config import MAX_IDLE_CONNECTIONS, USER_AGENT, CrawlConfig
from bulkdata_crawler.errors import FetchError


def build_session(config: CrawlConfig | None = None) -> requests.Session:
    """Return a ``requests.Session`` tuned for many small parallel GETs
    against a single host."""
    pool = MAX_IDLE_CONNECTIONS
    verify = True
    if config is not None:
        pool = max(pool, config.workers)
        verify = config.verify_ssl

    session = requests.Session()
    adapter = HTTPAdapter(
        max_retries=0,
        pool_connections=pool,
        pool_maxsize=pool,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.verify = verify
    session.headers.update({
        "User-Agent": USER_AGENT,
        "Accept-Encoding": "identity",
        "Connection": "keep-alive",
    })
    return session


def get(
    session: requests.Session,
    url: str,
    timeout: tuple[float, float],
    stream: bool = False,
) -> requests.Response:
    """Issue a GET and return the response, raising :class:`FetchError`
    on transport failures and non-2xx status codes.

    The caller owns the returned response and must close it.
    """
    try:
        resp = session.get(url, timeout=timeout, stream=stream)
    except requests.RequestException as exc:
        raise FetchError(url, str(exc)) from exc
    if not 200 <= resp.status_code < 300:
        resp.close()
        raise FetchError(url, f"HTTP {resp.status_code}")
    return resp
