"""
HTTP session setup shared by the API clients.
"""

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry


def build_session(token: str, max_retries: int = 3) -> requests.Session:
    """
    Create a session with bearer auth, JSON headers and transport retries.

    Only GET requests are retried; mutating calls go out exactly once.

    Args:
        token: Bearer token
        max_retries: Total retries for GET requests

    Returns:
        Configured requests.Session
    """
    session = requests.Session()
    retry_strategy = Retry(
        total=max_retries,
        backoff_factor=1,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["GET"],
        raise_on_status=False
    )
    adapter = HTTPAdapter(max_retries=retry_strategy)
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    headers = {
        "Content-Type": "application/json",
        "Accept": "application/json"
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    session.headers.update(headers)

    return session
