"""
Thin HTTP wrapper around the SVMMS REST API.
"""
import logging
from typing import Optional

import requests

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Raised for every non-2xx response."""

    def __init__(self, status_code: int, message: str, errors: Optional[list] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.errors = errors or []


class ApiClient:
    """
    Send JSON requests to the API, adding the bearer token when one is set.

    ``session`` only needs a ``requests.Session``-like ``request`` method, so a
    FastAPI ``TestClient`` works too.
    """

    def __init__(self, base_url: str = "http://localhost:8000", session=None, api_prefix: str = "/api"):
        self.base_url = base_url.rstrip("/")
        self.api_prefix = api_prefix
        self.session = session if session is not None else requests.Session()
        self.access_token: Optional[str] = None

    def _url(self, path: str) -> str:
        return f"{self.base_url}{self.api_prefix}{path}"

    def request(self, method: str, path: str, json=None, params=None) -> dict:
        headers = {}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"

        response = self.session.request(method, self._url(path), json=json, params=params, headers=headers)
        try:
            body = response.json()
        except ValueError:
            body = {}

        if not 200 <= response.status_code < 300:
            message = body.get("message") or "Request failed"
            logger.debug("%s %s failed with %s: %s", method, path, response.status_code, message)
            raise ApiError(response.status_code, message, body.get("errors"))
        return body

    def get(self, path: str, params=None) -> dict:
        return self.request("GET", path, params=params)

    def post(self, path: str, json=None) -> dict:
        return self.request("POST", path, json=json)

    def put(self, path: str, json=None) -> dict:
        return self.request("PUT", path, json=json)

    def delete(self, path: str) -> dict:
        return self.request("DELETE", path)
