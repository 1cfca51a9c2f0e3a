"""
Module: push.py
Description: Push delivery of payloads to webhook destinations.

Implements a single HTTP POST attempt with timeout handling and
classifies the result as success, retryable failure (HTTP status or
network problem) or terminal failure (request can never succeed).
"""

import time
from typing import Any, Optional

import httpx

from models.destination import Destination
from models.entry import sample_capture
from models.errors import HttpDeliveryError, NetworkDeliveryError, TerminalDeliveryError
from models.events import ProbeResult
from utils.logger import get_logger

logger = get_logger(__name__)


class PushDeliveryClient:
    """
    HTTP client for pushing payloads to destinations.

    Each call performs exactly one attempt; retries belong to the
    delivery wrapper in delivery.retry.
    """

    def __init__(self, timeout_seconds: float = 10, client: Optional[httpx.AsyncClient] = None):
        """
        Initialize push delivery client.

        Args:
            timeout_seconds: HTTP timeout in seconds
            client: Optional shared AsyncClient; a short-lived client is
                opened per attempt when omitted

        Raises:
            ValueError: If timeout_seconds is not positive
        """
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

        self.timeout = httpx.Timeout(timeout_seconds, connect=timeout_seconds)
        self._client = client

        logger.info(
            "Push delivery client initialized",
            timeout_seconds=timeout_seconds,
            shared_client=client is not None
        )

    async def _post(self, destination: Destination, payload: Any) -> httpx.Response:
        headers = {**destination.headers, 'Content-Type': 'application/json'}
        if self._client is not None:
            return await self._client.post(
                destination.endpoint_url,
                json=payload,
                headers=headers,
                timeout=self.timeout
            )
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(destination.endpoint_url, json=payload, headers=headers)

    async def deliver(self, destination: Destination, payload: Any) -> int:
        """
        POST payload to the destination once.

        Args:
            destination: Target destination
            payload: JSON-serializable body

        Returns:
            HTTP status code of the successful response

        Raises:
            HttpDeliveryError: Destination answered with a non-2xx status
            NetworkDeliveryError: Timeout, connection-level or other request failure
            TerminalDeliveryError: The request can never succeed as built, or
                the attempt failed in an unexpected way
        """
        logger.debug(
            "Attempting delivery",
            destination_id=destination.id,
            endpoint_url=destination.endpoint_url
        )

        try:
            response = await self._post(destination, payload)

        except (httpx.UnsupportedProtocol, httpx.InvalidURL) as e:
            logger.error(
                "Delivery request is invalid",
                destination_id=destination.id,
                error=str(e)
            )
            raise TerminalDeliveryError("networkError", str(e) or type(e).__name__, attempts=1) from e

        except (TypeError, ValueError) as e:
            # json encoding of the payload failed
            logger.error(
                "Payload is not JSON serializable",
                destination_id=destination.id,
                error=str(e)
            )
            raise TerminalDeliveryError("networkError", f"Invalid payload: {e}", attempts=1) from e

        except httpx.TimeoutException as e:
            logger.warning(
                "Delivery timeout",
                destination_id=destination.id,
                endpoint_url=destination.endpoint_url
            )
            raise NetworkDeliveryError(str(e) or "Request timed out") from e

        except httpx.TransportError as e:
            logger.warning(
                "Delivery network error",
                destination_id=destination.id,
                error=str(e),
                error_type=type(e).__name__
            )
            raise NetworkDeliveryError(str(e) or type(e).__name__) from e

        except httpx.RequestError as e:
            # decoding failures, redirect loops
            logger.warning(
                "Delivery request error",
                destination_id=destination.id,
                error=str(e),
                error_type=type(e).__name__
            )
            raise NetworkDeliveryError(str(e) or type(e).__name__) from e

        except Exception as e:
            logger.error(
                "Delivery failed unexpectedly",
                destination_id=destination.id,
                error=str(e),
                error_type=type(e).__name__
            )
            raise TerminalDeliveryError("networkError", str(e) or type(e).__name__, attempts=1) from e

        if not response.is_success:
            logger.warning(
                "Delivery HTTP error",
                destination_id=destination.id,
                status_code=response.status_code,
                response=response.text[:500]  # Truncate large responses
            )
            raise HttpDeliveryError(response.status_code, response.text[:500])

        logger.info(
            "Payload delivered",
            destination_id=destination.id,
            status_code=response.status_code
        )
        return response.status_code

    async def probe(self, destination: Destination) -> ProbeResult:
        """
        Send a fixed test payload once, bypassing queue and retries.

        Args:
            destination: Destination to test

        Returns:
            ProbeResult with status and round-trip time
        """
        started = time.perf_counter()
        try:
            status_code = await self.deliver(destination, sample_capture().to_body())
            ok, error = True, None
        except HttpDeliveryError as e:
            status_code, ok, error = e.status_code, False, e.detail
        except (NetworkDeliveryError, TerminalDeliveryError) as e:
            status_code, ok, error = None, False, e.detail

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "Destination probed",
            destination_id=destination.id,
            ok=ok,
            status_code=status_code,
            response_time_ms=round(elapsed_ms, 1)
        )
        return ProbeResult(ok=ok, status_code=status_code, response_time_ms=elapsed_ms, error=error)
