"""Data fetching and service invocation.

This module provides:
- build_auth_headers: Resolve suite auth into request headers
- DataFetcher: Load input and ground truth data, and call the service under test

Every call is a single attempt; failures surface as typed exceptions that the
orchestrator turns into a failed case.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
import os
from pathlib import Path
from typing import Any

import httpx

from extraction_tester.core.config import (
    ApiKeyAuth,
    ApiSource,
    Auth,
    BearerAuth,
    DataSource,
    FileSource,
    JsonSource,
)
from extraction_tester.core.exceptions import (
    CredentialError,
    DataFetchError,
    ServiceInvocationError,
)

logger = logging.getLogger(__name__)


def _read_secret(env_var: str) -> str:
    value = os.environ.get(env_var)
    if not value:
        raise CredentialError(f"Environment variable {env_var} is not set", env_var=env_var)
    return value


def build_auth_headers(auth: Auth | None) -> dict[str, str]:
    """Build request headers for the configured auth scheme.

    Secrets are read from the environment at call time, never from the
    suite file.

    Raises:
        CredentialError: If the referenced environment variable is unset or empty.
    """
    if isinstance(auth, BearerAuth):
        return {"Authorization": f"Bearer {_read_secret(auth.token_env)}"}
    if isinstance(auth, ApiKeyAuth):
        return {auth.header_name: _read_secret(auth.key_env)}
    return {}


class DataFetcher:
    """Fetches case data and invokes the extraction service over HTTP.

    Example:
        ```python
        fetcher = DataFetcher(timeout=10.0)
        ground_truth = await fetcher.fetch(FileSource(path="gt/invoice.json"))
        output = await fetcher.invoke("https://svc.local/extract", "POST", {"doc": "..."})
        ```
    """

    def __init__(
        self,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            timeout: Per-request deadline in seconds.
            transport: Optional httpx transport (e.g. ``httpx.MockTransport`` in tests).
        """
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def fetch(self, source: DataSource, auth: Auth | None = None) -> Any:
        """Fetch data described by a data source.

        Args:
            source: File, inline JSON or API data source.
            auth: Auth applied to API sources.

        Returns:
            Decoded JSON, or a base64 string for non-JSON files.

        Raises:
            DataFetchError: If the data cannot be read, fetched or decoded.
        """
        if isinstance(source, FileSource):
            return await asyncio.to_thread(self._read_file, source.path)
        if isinstance(source, JsonSource):
            if isinstance(source.source, str):
                return await asyncio.to_thread(self._read_file, source.source)
            return source.source
        if isinstance(source, ApiSource):
            return await self._fetch_api(source, auth)
        raise DataFetchError(f"Unknown data source type: {type(source).__name__}")

    def _read_file(self, path: str) -> Any:
        file_path = Path(path)
        try:
            content = file_path.read_bytes()
        except OSError as e:
            raise DataFetchError(
                f"Failed to read file: {path}", source=path, last_error=e
            ) from e

        if file_path.suffix.lower() != ".json":
            return base64.b64encode(content).decode("ascii")

        try:
            return json.loads(content)
        except ValueError as e:
            raise DataFetchError(
                f"Invalid JSON in file: {path}", source=path, last_error=e
            ) from e

    async def _fetch_api(self, source: ApiSource, auth: Auth | None) -> Any:
        try:
            headers = build_auth_headers(auth)
        except CredentialError as e:
            raise DataFetchError(str(e), source=source.endpoint, last_error=e) from e

        logger.debug("Fetching from API: %s %s", source.method, source.endpoint)
        try:
            async with self._client() as client:
                response = await client.request(
                    source.method,
                    source.endpoint,
                    headers=headers,
                    json=source.body,
                )
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            raise DataFetchError(
                f"Failed to fetch from API: {source.endpoint} "
                f"(HTTP {e.response.status_code})",
                source=source.endpoint,
                last_error=e,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise DataFetchError(
                f"Failed to fetch from API: {source.endpoint}: {e}",
                source=source.endpoint,
                last_error=e,
            ) from e

    async def invoke(
        self,
        endpoint: str,
        method: str,
        payload: Any,
        auth: Auth | None = None,
    ) -> Any:
        """Call the extraction service with the case input.

        Args:
            endpoint: Service URL.
            method: HTTP method (GET or POST).
            payload: Case input, sent as the JSON body.
            auth: Auth applied to the request.

        Returns:
            The decoded JSON response body.

        Raises:
            ServiceInvocationError: If the call fails, returns a non-2xx status,
                or returns a body that is not JSON.
        """
        try:
            headers = build_auth_headers(auth)
        except CredentialError as e:
            raise ServiceInvocationError(str(e), endpoint=endpoint, last_error=e) from e
        headers["Content-Type"] = "application/json"

        logger.debug("Executing service: %s %s", method, endpoint)
        try:
            async with self._client() as client:
                response = await client.request(
                    method,
                    endpoint,
                    headers=headers,
                    content=json.dumps(payload),
                )
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise ServiceInvocationError(
                f"Service returned HTTP {status}: {endpoint}",
                endpoint=endpoint,
                status_code=status,
                last_error=e,
            ) from e
        except httpx.TimeoutException as e:
            raise ServiceInvocationError(
                f"Service call timed out after {self.timeout}s: {endpoint}",
                endpoint=endpoint,
                last_error=e,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise ServiceInvocationError(
                f"Service execution failed: {endpoint}: {e}",
                endpoint=endpoint,
                last_error=e,
            ) from e
