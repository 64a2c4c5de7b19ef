"""Shared requests session for the video provider."""

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from telehealth.core import config


def create_http_session(max_retries: int | None = None) -> requests.Session:
    """
    Session with connection pooling.

    Only idempotent methods are retried; a POST that creates a checkout
    session or a room is never replayed.
    """
    session = requests.Session()
    retry_strategy = Retry(
        total=config.HTTP_MAX_RETRIES if max_retries is None else max_retries,
        backoff_factor=0.5,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET", "DELETE"],
    )
    adapter = HTTPAdapter(max_retries=retry_strategy, pool_connections=10, pool_maxsize=10)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session
