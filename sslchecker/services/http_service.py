"""
HTTP GET wrapper that sends requests through an assembled SSL context.
"""
import logging
import ssl
from typing import Optional

import requests
from requests.adapters import HTTPAdapter

from ..security.errors import InvalidArgumentError, UnexpectedResponseError


class SSLContextAdapter(HTTPAdapter):
    """Transport adapter that hands a fixed SSLContext to urllib3."""

    def __init__(self, ssl_context: ssl.SSLContext, **kwargs):
        self.ssl_context = ssl_context
        super().__init__(**kwargs)

    def init_poolmanager(self, *args, **kwargs):
        kwargs['ssl_context'] = self.ssl_context
        return super().init_poolmanager(*args, **kwargs)

    def proxy_manager_for(self, *args, **kwargs):
        kwargs['ssl_context'] = self.ssl_context
        return super().proxy_manager_for(*args, **kwargs)


class HttpService:
    """Performs HTTP requests, optionally using a custom SSL context."""

    def __init__(self, ssl_context: Optional[ssl.SSLContext] = None, timeout: int = 30):
        """
        Initialize the HTTP service.

        Args:
            ssl_context: Context used for HTTPS connections, platform defaults if None
            timeout: Request timeout in seconds
        """
        self.ssl_context = ssl_context
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)
        self.session = self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a requests session bound to the SSL context."""
        session = requests.Session()

        if self.ssl_context is not None:
            session.mount("https://", SSLContextAdapter(self.ssl_context))

        return session

    def get_request(self, url: str) -> str:
        """
        Perform a GET request.

        Args:
            url: Target URL for the request

        Returns:
            The response body as text

        Raises:
            InvalidArgumentError: If url is blank
            UnexpectedResponseError: If the status code is not 200
            requests.exceptions.RequestException: On connection or TLS failures
        """
        if not url or not url.strip():
            raise InvalidArgumentError("url may not be blank")

        self.logger.info(f"Fetching URL: {url}")
        response = self.session.get(url, timeout=self.timeout)

        if response.status_code != 200:
            self.logger.error(
                f"Unexpected response received:\n* Status Code: {response.status_code}\n"
                f"* Headers: {dict(response.headers)}\n* Body: {response.text}"
            )
            raise UnexpectedResponseError(
                f"Unexpected status code {response.status_code} received for GET {url}",
                response.status_code,
            )

        self.logger.debug(f"Raw result: {response.text}")
        return response.text

    def close(self):
        self.session.close()
