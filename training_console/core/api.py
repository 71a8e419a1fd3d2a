"""Async client for the content server's ``/api`` endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx

from ..log import logger
from .tabs import TabsResponse


class RemoteCallFailure(Exception):
    """A content fetch or check call did not produce a usable answer."""


@dataclass
class Scenario:
    name: str = ""
    description: str = ""
    difficulty: str = ""
    estimated_time: str = ""
    total_steps: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Scenario:
        return cls(
            name=str(data.get("name", "")),
            description=str(data.get("description", "")),
            difficulty=str(data.get("difficulty", "")),
            estimated_time=str(data.get("estimatedTime", "")),
            total_steps=int(data.get("totalSteps", 0) or 0),
        )


@dataclass
class Step:
    number: int
    title: str
    content: str = ""
    has_check: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Step:
        return cls(
            number=int(data.get("number", 0)),
            title=str(data.get("title", "")),
            content=str(data.get("content", "")),
            has_check=bool(data.get("hasCheck", False)),
        )


@dataclass
class CheckResult:
    success: bool
    message: str


class ContentClient:
    """Thin wrapper over ``httpx.AsyncClient`` that raises RemoteCallFailure."""

    def __init__(
        self,
        api_base: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=api_base.rstrip("/"), timeout=timeout, transport=transport
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, endpoint: str) -> Any:
        try:
            response = await self._client.request(method, endpoint)
        except httpx.HTTPError as error:
            logger.warning("%s %s failed: %s", method, endpoint, error)
            raise RemoteCallFailure(str(error) or type(error).__name__) from error

        if response.is_error:
            try:
                message = response.json().get("error")
            except (ValueError, AttributeError):
                message = None
            raise RemoteCallFailure(message or f"HTTP {response.status_code}")

        try:
            return response.json()
        except ValueError as error:
            raise RemoteCallFailure(f"invalid JSON from {endpoint}") from error

    async def fetch_tabs(self) -> TabsResponse:
        """Tab configuration; falls back to "terminal only" when unavailable."""
        try:
            payload = await self._request("GET", "/tabs")
        except RemoteCallFailure as error:
            logger.info("no tab configuration (%s), using terminal only", error)
            return TabsResponse()
        return TabsResponse.parse(payload)

    async def fetch_scenario(self) -> Scenario:
        payload = await self._request("GET", "/scenario")
        if not isinstance(payload, dict):
            raise RemoteCallFailure("unexpected scenario payload")
        return Scenario.from_dict(payload)

    async def fetch_steps(self) -> list[Step]:
        payload = await self._request("GET", "/steps")
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise RemoteCallFailure("unexpected steps payload")
        return [Step.from_dict(s) for s in payload if isinstance(s, dict)]

    async def fetch_step(self, number: int) -> Step:
        payload = await self._request("GET", f"/steps/{number}")
        if not isinstance(payload, dict):
            raise RemoteCallFailure("unexpected step payload")
        return Step.from_dict(payload)

    async def check_step(self, number: int) -> CheckResult:
        payload = await self._request("POST", f"/steps/{number}/check")
        if not isinstance(payload, dict):
            raise RemoteCallFailure("unexpected check payload")
        return CheckResult(
            success=bool(payload.get("success", False)),
            message=str(payload.get("message", "")),
        )
