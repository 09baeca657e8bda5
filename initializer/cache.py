"""
cache.py — The two HTTP steps that close an initialization run.

  Step 4 → purge_cache() : drop whatever the CDN cached for the placeholder site
  Step 5 → warm_up()     : hit the API once so the first visitor is not the one
                           paying for the cold start

No retries: a non-2xx response raises and the run stops there.
"""

import logging

import requests

logger = logging.getLogger(__name__)


def _join(base_url: str, path: str) -> str:
    if not path:
        return base_url
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def purge_cache(url: str, method: str = "PURGE", timeout: float = 30,
                session: requests.Session = None) -> int:
    """
    Ask the CDN in front of ``url`` to drop its cached copy.

    Returns the HTTP status code. Raises requests.HTTPError on non-2xx.
    """
    http = session or requests
    logger.info(f"Purging cache: {method} {url}")
    response = http.request(method, url, timeout=timeout)
    response.raise_for_status()
    logger.info(f"Cache purged ({response.status_code})")
    return response.status_code


def warm_up(base_url: str, path: str = "", timeout: float = 30,
            session: requests.Session = None) -> int:
    """GET ``base_url``/``path`` once. Returns the status code."""
    http = session or requests
    url = _join(base_url, path)
    logger.info(f"Warming up: GET {url}")
    response = http.get(url, timeout=timeout)
    response.raise_for_status()
    logger.info(f"Warm-up response: {response.status_code}")
    return response.status_code
