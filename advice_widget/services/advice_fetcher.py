"""HTTP client for fetching a single advice slip"""

import logging
import time

import httpx
from pydantic import ValidationError

from advice_widget.config import config
from advice_widget.models.advice import AdviceFetchResult, AdvicePayload, AdviceSlipResponse

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Raised when the advice slip cannot be fetched or decoded"""

    def __init__(self, url: str, status_code: int | None = None, message: str = ""):
        self.url = url
        self.status_code = status_code
        self.message = message
        super().__init__(f"Failed to fetch {url}: {message}")


class AdviceFetcher:
    """Fetches one advice slip per call. No retries, no caching."""

    def __init__(
        self,
        endpoint_url: str | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        """
        Initialize fetcher

        Args:
            endpoint_url: Advice endpoint (defaults to config.advice_endpoint_url)
            client: Optional preconfigured httpx client; the fetcher only closes
                clients it created itself
        """
        self.endpoint_url = endpoint_url or config.advice_endpoint_url
        self._owns_client = client is None
        self.client = client or httpx.Client(
            timeout=httpx.Timeout(config.http_timeout_seconds),
            follow_redirects=True,
        )

    def _request(self) -> httpx.Response:
        """Issue the GET, raising FetchError on transport failure"""
        try:
            return self.client.get(self.endpoint_url)
        except httpx.HTTPError as e:
            raise FetchError(self.endpoint_url, message=f"{type(e).__name__}: {e}") from e

    def fetch_slip(self) -> AdvicePayload:
        """
        Issue one GET and decode the slip

        Raises:
            FetchError: On transport failure, non-2xx status or unexpected body
        """
        return self._decode(self._request())

    def _decode(self, response: httpx.Response) -> AdvicePayload:
        """Decode the slip envelope from a response"""
        if not response.is_success:
            raise FetchError(
                self.endpoint_url,
                status_code=response.status_code,
                message=f"HTTP {response.status_code}",
            )

        try:
            envelope = AdviceSlipResponse.model_validate_json(response.content)
        except ValidationError as e:
            raise FetchError(
                self.endpoint_url,
                status_code=response.status_code,
                message=f"Unexpected response body: {e.error_count()} validation error(s)",
            ) from e

        return envelope.slip

    def fetch(self) -> AdviceFetchResult:
        """Fetch one slip, mapping any failure to an unsuccessful result"""
        start_time = time.time()
        logger.debug(f"Fetching advice from {self.endpoint_url}")

        try:
            response = self._request()
            slip = self._decode(response)
        except FetchError as e:
            logger.warning(f"Advice fetch failed: {e.message}")
            return AdviceFetchResult(
                success=False,
                status=e.status_code,
                error_message=e.message,
                fetch_duration_ms=(time.time() - start_time) * 1000,
            )

        logger.info(f"Fetched advice slip {slip.id}")
        return AdviceFetchResult(
            success=True,
            slip=slip,
            status=response.status_code,
            fetch_duration_ms=(time.time() - start_time) * 1000,
        )

    def close(self) -> None:
        """Close the HTTP client if this fetcher created it"""
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "AdviceFetcher":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
