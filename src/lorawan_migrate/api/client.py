#!/usr/bin/env python3
"""HTTP Client for the destination network server REST API.

This module provides a reusable HTTP client that handles the common concerns
of talking to the destination network server:

    - Static ``Authorization`` header on every request
    - Rate limit handling on 429 responses
    - Exponential backoff on 5xx responses and network errors (GET, DELETE)
    - Page-based pagination (``perPage`` / ``page``) with consistency checks
    - Connection pooling via a shared aiohttp session
    - Typed exceptions for every failure mode

Design Philosophy:
    This client knows HOW to talk to the network server, but not WHAT to
    create. It has no knowledge of applications, devices or gateways; that
    knowledge belongs in NetworkServerAPI, which composes this client.

Usage:
    async with NetworkServerClient(base_url, authorization) as client:
        data = await client.get("/1/nwk/apps", params={"filter": "name~Farm"})

        async for page in client.paginate("/1/nwk/apps", field="apps"):
            for app in page:
                process(app)

        devices = await client.fetch_all(f"/1/nwk/app/{app_id}/devices", field="devices")

Author: LoRaWAN Migration Team
"""
import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

import aiohttp

from .exceptions import (
    APIError,
    ConfigurationError,
    ConnectionError,
    NetworkError,
    NotFoundError,
    PaginationError,
    RateLimitError,
    ServerError,
    TimeoutError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# ============================================
# Configuration
# ============================================

@dataclass
class PaginationConfig:
    """Configuration for paginated listing requests.

    Attributes:
        page_size: Number of items per request (``perPage``)
        delay_between_pages: Seconds to wait between requests
        max_pages: Safety limit to prevent infinite loops (None = no limit)
    """
    page_size: int = 100
    delay_between_pages: float = 0.0
    max_pages: Optional[int] = None


DEFAULT_PAGINATION = PaginationConfig()

# Methods safe to resend after a 5xx or a network error.
RETRYABLE_METHODS = frozenset({"GET", "DELETE"})


# ============================================
# The Client
# ============================================

class NetworkServerClient:
    """Async HTTP client for the destination network server.

    The client must be used as an async context manager so the aiohttp
    session is opened and closed around the whole migration:

        async with NetworkServerClient(base_url, authorization) as client:
            data = await client.get("/1/nwk/apps")

    Attributes:
        base_url: Base URL for API requests (e.g., "https://eu1.loriot.io")
        authorization: Value sent verbatim in the ``Authorization`` header
    """

    def __init__(
        self,
        base_url: str,
        authorization: str,
        max_retries: int = 3,
        request_timeout: float = 60.0,
    ):
        """Initialize the client.

        Raises:
            ConfigurationError: If base_url or authorization is empty.
        """
        self.base_url = (base_url or "").rstrip("/")
        self.authorization = authorization
        self.max_retries = max_retries
        self.request_timeout = request_timeout

        missing = []
        if not self.base_url:
            missing.append("URL")
        if not self.authorization:
            missing.append("AUTH")
        if missing:
            raise ConfigurationError(
                "Destination URL and Authorization header are required",
                missing_keys=missing,
            )

        self._session: Optional[aiohttp.ClientSession] = None

    # ----------------------------------------
    # Context Manager Protocol
    # ----------------------------------------

    async def __aenter__(self) -> "NetworkServerClient":
        self._session = aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(limit=10, limit_per_host=10),
            timeout=aiohttp.ClientTimeout(total=self.request_timeout, connect=10),
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    # ----------------------------------------
    # Low-Level Request Methods
    # ----------------------------------------

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": self.authorization,
            "Content-Type": "application/json",
        }

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        json_body: Optional[dict] = None,
    ) -> dict[str, Any]:
        """Make a single HTTP request (no retry logic).

        Args:
            method: HTTP method (GET, POST, DELETE)
            endpoint: API endpoint path (e.g., "/1/nwk/apps")
            params: Query parameters
            json_body: JSON request body (for POST)

        Returns:
            Parsed JSON response, or an empty dict for an empty body

        Raises:
            APIError: If response status is not 2xx
            RuntimeError: If called outside of async context manager
            ConnectionError: If connection to server fails
            TimeoutError: If request times out
        """
        if not self._session:
            raise RuntimeError(
                "NetworkServerClient must be used as async context manager: "
                "async with NetworkServerClient(...) as client:"
            )

        url = f"{self.base_url}{endpoint}"

        try:
            async with self._session.request(
                method=method,
                url=url,
                headers=self._headers(),
                params=params,
                json=json_body,
            ) as response:
                if response.status >= 400:
                    error_text = await response.text()
                    raise self._create_api_error(
                        status=response.status,
                        method=method,
                        endpoint=endpoint,
                        response_body=error_text,
                        retry_after=response.headers.get("Retry-After"),
                    )

                body = await response.text()
                if not body.strip():
                    return {}
                return json.loads(body)

        except aiohttp.ClientConnectionError as e:
            raise ConnectionError(
                f"Failed to connect to {self.base_url}",
                host=self.base_url,
                cause=e,
            )

        except asyncio.TimeoutError as e:
            raise TimeoutError(
                f"Request to {endpoint} timed out",
                timeout_seconds=self.request_timeout,
                cause=e,
            )

        except aiohttp.ClientError as e:
            raise NetworkError(
                f"Network error during {method} {endpoint}: {e}",
                cause=e,
            )

    def _create_api_error(
        self,
        status: int,
        method: str,
        endpoint: str,
        response_body: str,
        retry_after: Optional[str] = None,
    ) -> APIError:
        """Create appropriate APIError subclass based on status code."""
        if status == 404:
            return NotFoundError(
                resource_type="Resource",
                resource_id=endpoint,
                endpoint=endpoint,
                method=method,
                response_body=response_body,
            )

        if status == 429:
            return RateLimitError(
                f"Rate limit exceeded for {endpoint}",
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
                endpoint=endpoint,
                method=method,
                response_body=response_body,
            )

        if status in (400, 422):
            return ValidationError(
                f"Validation failed for {method} {endpoint}",
                status_code=status,
                endpoint=endpoint,
                method=method,
                response_body=response_body,
            )

        if status >= 500:
            return ServerError(
                f"Server error ({status}) for {method} {endpoint}",
                status_code=status,
                endpoint=endpoint,
                method=method,
                response_body=response_body,
            )

        return APIError(
            f"{method} {endpoint} failed",
            status_code=status,
            endpoint=endpoint,
            method=method,
            response_body=response_body,
        )

    async def _request_with_retry(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None,
        json_body: Optional[dict] = None,
    ) -> dict[str, Any]:
        """Make an HTTP request with automatic retry.

        This method wraps _request() with resilience logic:
            - 429 Rate Limited: Wait for Retry-After, retry
            - 5xx Server Errors: Exponential backoff retry (GET/DELETE only)
            - Network errors: Exponential backoff retry (GET/DELETE only)
            - 4xx (other): Raised immediately

        A POST that failed with a 5xx or a network error may already have
        created its resource, so it is never sent twice.

        Raises:
            APIError: If request fails after all retries
            NetworkError: If network error persists after retries
        """
        last_error: Optional[Exception] = None
        backoff_delay = 1.0

        for attempt in range(1, self.max_retries + 1):
            try:
                return await self._request(method, endpoint, params, json_body)

            except RateLimitError as e:
                last_error = e
                if attempt < self.max_retries:
                    logger.warning(
                        f"Rate limited, waiting {e.retry_after}s (attempt {attempt}/{self.max_retries})"
                    )
                    await asyncio.sleep(e.retry_after)
                    continue
                raise

            except (ServerError, NetworkError) as e:
                last_error = e
                if method in RETRYABLE_METHODS and attempt < self.max_retries:
                    logger.warning(
                        f"{e.code} on {method} {endpoint}, retrying in {backoff_delay}s "
                        f"(attempt {attempt}/{self.max_retries})"
                    )
                    await asyncio.sleep(backoff_delay)
                    backoff_delay = min(backoff_delay * 2, 30.0)
                    continue
                raise

            except (NotFoundError, ValidationError):
                raise

        if last_error:
            raise last_error

        raise APIError(
            "Request failed after all retries",
            status_code=0,
            endpoint=endpoint,
            method=method,
        )

    # ----------------------------------------
    # High-Level Request Methods
    # ----------------------------------------

    async def get(
        self,
        endpoint: str,
        params: Optional[dict] = None,
    ) -> dict[str, Any]:
        return await self._request_with_retry("GET", endpoint, params=params)

    async def post(
        self,
        endpoint: str,
        json_body: dict,
        params: Optional[dict] = None,
    ) -> dict[str, Any]:
        return await self._request_with_retry("POST", endpoint, params=params, json_body=json_body)

    async def delete(
        self,
        endpoint: str,
        params: Optional[dict] = None,
    ) -> dict[str, Any]:
        return await self._request_with_retry("DELETE", endpoint, params=params)

    # ----------------------------------------
    # Pagination Methods
    # ----------------------------------------

    async def paginate(
        self,
        endpoint: str,
        field: str,
        config: Optional[PaginationConfig] = None,
        params: Optional[dict] = None,
    ) -> AsyncIterator[list[dict]]:
        """Iterate through a paginated listing one page at a time.

        Pages are requested with ``perPage``/``page`` (page numbers start at 1)
        until the accumulated item count reaches the ``total`` reported by the
        server. An empty page beyond the expected range ends the listing
        normally.

        Args:
            endpoint: API endpoint path
            field: Name of the list field in each page (e.g., "apps", "devices")
            config: Pagination configuration (page size, delay, etc.)
            params: Additional query parameters (e.g., filters)

        Yields:
            List of items from each page

        Raises:
            PaginationError: If ``total`` or ``field`` is absent from a page, or a page
                inside the expected range comes back empty.
        """
        config = config or DEFAULT_PAGINATION
        params = dict(params or {})
        per_page = config.page_size

        fetched = 0
        total = per_page
        page = 1

        while fetched < total:
            params["perPage"] = per_page
            params["page"] = page

            data = await self.get(endpoint, params=params)
            if data.get("total") is None:
                raise PaginationError(
                    f"{endpoint} total not found in the response",
                    endpoint=endpoint,
                    field="total",
                    page=page,
                )
            total = int(data["total"])

            items = data.get(field)
            if items is None:
                raise PaginationError(
                    f"{endpoint} field {field} not found in the response",
                    endpoint=endpoint,
                    field=field,
                    page=page,
                )

            if not items:
                if page <= total / per_page:
                    raise PaginationError(
                        f"{endpoint} returns 0 {field} while total is {total}",
                        endpoint=endpoint,
                        field=field,
                        page=page,
                        total=total,
                    )
                break

            fetched += len(items)
            yield items

            logger.debug(f"Progress {endpoint}: {fetched}/{total} {field}")

            if config.max_pages and page >= config.max_pages:
                logger.info(f"Reached max_pages limit ({config.max_pages})")
                break

            page += 1
            if config.delay_between_pages > 0:
                await asyncio.sleep(config.delay_between_pages)

    async def fetch_all(
        self,
        endpoint: str,
        field: str,
        config: Optional[PaginationConfig] = None,
        params: Optional[dict] = None,
    ) -> list[dict]:
        """Fetch all items from a paginated endpoint into a single list."""
        all_items = []
        async for page in self.paginate(endpoint, field, config, params):
            all_items.extend(page)
        return all_items
