"""
HTTP client that starts rebuild pipelines for consumer build projects.
"""

from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import quote

import httpx
import structlog
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    retry_if_result,
)

from pkgmeta.configuration.build_trigger_config import BuildTriggerSettings
from pkgmeta.configuration.common_config import get_app_settings
from pkgmeta.models.errors import TriggerError

logger = structlog.get_logger(__name__)


class BuildTrigger(ABC):
    """Starts a build for a build project. Completion is not awaited."""

    @abstractmethod
    async def start_build(self, project: str) -> None:
        """Start a build of ``project``; raise TriggerError on failure."""


class BuildTriggerClient(BuildTrigger):
    """Async client for a GitLab-compatible pipeline API."""

    def __init__(self, config: Optional[BuildTriggerSettings] = None):
        self.config = config or get_app_settings().build_trigger
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "BuildTriggerClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_client(self) -> None:
        if self._client is None:
            timeout = httpx.Timeout(
                connect=self.config.CONNECTION_TIMEOUT,
                read=self.config.READ_TIMEOUT,
                write=self.config.CONNECTION_TIMEOUT,
                pool=self.config.CONNECTION_TIMEOUT,
            )
            limits = httpx.Limits(max_connections=self.config.MAX_CONNECTIONS)
            headers = {}
            if self.config.BUILD_TRIGGER_TOKEN:
                headers["PRIVATE-TOKEN"] = self.config.BUILD_TRIGGER_TOKEN
            self._client = httpx.AsyncClient(
                timeout=timeout,
                limits=limits,
                base_url=self.config.BUILD_TRIGGER_URL,
                headers=headers,
            )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _should_retry_on_result(self, result: httpx.Response) -> bool:
        return result.status_code >= 500

    async def _make_request_with_retry(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        await self._ensure_client()

        @retry(
            stop=stop_after_attempt(self.config.MAX_RETRIES + 1),
            wait=wait_exponential(multiplier=1, max=60, exp_base=self.config.RETRY_BACKOFF_FACTOR),
            retry=(
                retry_if_exception_type((httpx.ConnectError, httpx.TimeoutException))
                | retry_if_result(self._should_retry_on_result)
            ),
            retry_error_callback=lambda retry_state: retry_state.outcome.result(),
            reraise=True,
        )
        async def _make_request():
            logger.debug("Making HTTP request", method=method, endpoint=endpoint)
            response = await self._client.request(method, endpoint, **kwargs)
            logger.debug("HTTP request completed", method=method, endpoint=endpoint, status_code=response.status_code)
            return response

        return await _make_request()

    async def start_build(self, project: str) -> None:
        """
        Start a pipeline for a build project.

        Args:
            project: Build project identifier (numeric id or namespaced path)

        Raises:
            TriggerError: If the pipeline could not be created
        """
        if not project:
            raise TriggerError(project, "empty build project name")

        endpoint = f"/api/v4/projects/{quote(project, safe='')}/pipeline"
        try:
            response = await self._make_request_with_retry(
                "POST", endpoint, json={"ref": self.config.BUILD_TRIGGER_REF}
            )
        except httpx.HTTPError as e:
            raise TriggerError(project, f"request failed: {e}") from e

        if 200 <= response.status_code < 300:
            pipeline_id = None
            try:
                pipeline_id = response.json().get("id")
            except (ValueError, AttributeError):
                pass
            logger.info("Build started", project=project, ref=self.config.BUILD_TRIGGER_REF, pipeline_id=pipeline_id)
            return

        error_msg = f"HTTP {response.status_code}"
        try:
            error_data = response.json()
            detail = error_data.get("message") or error_data.get("error")
            if detail:
                error_msg += f": {detail}"
        except (ValueError, TypeError, AttributeError):
            error_msg += f": {response.text}"
        raise TriggerError(project, error_msg, status_code=response.status_code)
