"""HTTP transport to the analysis gateway."""

from __future__ import annotations

import contextlib
import ipaddress
import logging
import ssl
import time
from collections.abc import Callable, Iterable, Iterator
from typing import TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from skynet_review import __version__
from skynet_review.client.models import (
    AnalysisRequest,
    AnalysisResult,
    HealthResponse,
)
from skynet_review.client.stream import FindingSink, IngestionOutcome, StreamIngestor
from skynet_review.errors import ConfigError, InsecureEndpoint, TransportError

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

_RESULTS = TypeAdapter(list[AnalysisResult])

_LOOPBACK_NAMES = {"localhost", "localhost.localdomain"}


class TransportClient:
    """Talks to ``/api/health``, ``/api/analyze`` and ``/api/analyze/stream``.

    Plain ``http`` is only accepted for loopback hosts. ``timeout`` bounds
    each read and, for streams, the whole request (analysis can take
    minutes); ``connect_timeout`` is kept short so an unreachable gateway
    fails fast. Response bodies of failed requests are never surfaced, only
    their status codes.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 300.0,
        connect_timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = _validate_base_url(base_url)
        self._timeout = timeout

        headers = {
            "Accept": "application/json",
            "User-Agent": f"skynet-review/{__version__}",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._http = httpx.Client(
            base_url=self._base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout, connect=connect_timeout),
            verify=_tls_context(),
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> TransportClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def health_check(self) -> HealthResponse:
        with self._translate_errors("Health check"):
            response = self._http.get("/api/health")
        self._check_status(response, "Health check")
        return self._decode(response, HealthResponse.model_validate_json)

    def analyze(self, request: AnalysisRequest) -> list[AnalysisResult]:
        """Buffered analysis: one JSON array of per-agent results."""
        with self._translate_errors("API request"):
            response = self._http.post("/api/analyze", json=request.to_payload())
        self._check_status(response, "API request")
        return self._decode(response, _RESULTS.validate_json)

    def analyze_stream(
        self, request: AnalysisRequest, sink: FindingSink
    ) -> IngestionOutcome:
        """Streamed analysis: *sink* receives each finding as it arrives.

        Failures reading the body, including running past ``timeout`` in
        total, are reported through the returned outcome rather than raised.
        """
        deadline = time.monotonic() + self._timeout
        with self._translate_errors("Streaming request"):
            with self._http.stream(
                "POST",
                "/api/analyze/stream",
                json=request.to_payload(),
                headers={"Accept": "text/event-stream"},
            ) as response:
                self._check_status(response, "Streaming request")
                outcome = StreamIngestor(sink).run(
                    _until(deadline, response.iter_bytes())
                )

        logger.debug(
            "Stream ended: %s, %d finding(s), complete=%s",
            outcome.kind.value,
            outcome.findings,
            outcome.completed,
        )
        return outcome

    @contextlib.contextmanager
    def _translate_errors(self, what: str) -> Iterator[None]:
        try:
            yield
        except httpx.TimeoutException as exc:
            logger.debug("%s timed out: %r", what, exc)
            raise TransportError(f"{what} timed out") from exc
        except httpx.ConnectError as exc:
            logger.debug("%s could not connect: %r", what, exc)
            raise TransportError(
                f"Could not connect to gateway at {self._base_url}"
            ) from exc
        except httpx.HTTPError as exc:
            logger.debug("%s failed: %r", what, exc)
            raise TransportError(f"{what} failed: {type(exc).__name__}") from exc

    @staticmethod
    def _check_status(response: httpx.Response, what: str) -> None:
        if response.is_success:
            return
        # The body may carry service internals; only the status is reported
        logger.debug("%s returned HTTP %d", what, response.status_code)
        raise TransportError(
            f"{what} failed with status {response.status_code}",
            status_code=response.status_code,
        )

    @staticmethod
    def _decode(response: httpx.Response, parse: Callable[[bytes], _T]) -> _T:
        try:
            return parse(response.content)
        except ValidationError as exc:
            logger.debug("Unexpected response body: %s", exc)
            raise TransportError(
                "Gateway returned a malformed response",
                status_code=response.status_code,
            ) from exc


def _until(deadline: float, chunks: Iterable[bytes]) -> Iterator[bytes]:
    # httpx's read timeout restarts on every chunk; this bounds the total
    for chunk in chunks:
        yield chunk
        if time.monotonic() > deadline:
            raise httpx.ReadTimeout("Request exceeded overall timeout")


def _validate_base_url(base_url: str) -> str:
    try:
        url = httpx.URL(base_url)
    except (httpx.InvalidURL, TypeError) as exc:
        raise ConfigError(f"Invalid gateway URL: {base_url!r}") from exc

    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigError(f"Invalid gateway URL: {base_url!r}")
    if url.scheme == "http" and not is_loopback_host(url.host):
        raise InsecureEndpoint(
            f"Refusing plain HTTP to non-local host {url.host!r}; use https://"
        )
    return str(url).rstrip("/")


def is_loopback_host(host: str) -> bool:
    """Whether *host* names the local machine."""
    host = host.strip("[]").lower()
    if host in _LOOPBACK_NAMES:
        return True
    try:
        return ipaddress.ip_address(host).is_loopback
    except ValueError:
        return False


def _tls_context() -> ssl.SSLContext:
    context = ssl.create_default_context()
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    return context
