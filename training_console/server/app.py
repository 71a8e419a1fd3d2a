"""FastAPI content server: scenario, steps, tab configuration and checks."""

from __future__ import annotations

import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .scenario import (
    ScenarioError,
    ServerSettings,
    StepInfo,
    build_tabs,
    load_scenario,
    load_steps,
    load_tabs_config,
)

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Reported to the client as ``{"error": message}`` with *status_code*."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


async def run_check(
    command: list[str], script: str, timeout: float
) -> dict[str, object]:
    """Run a check script; success means exit status 0."""
    try:
        proc = await asyncio.create_subprocess_exec(
            *command,
            script,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except OSError as error:
        logger.error("could not start check command %s: %s", command, error)
        return {"success": False, "message": str(error)}

    try:
        output, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        return {"success": False, "message": f"check timed out after {timeout:g}s"}

    message = output.decode("utf-8", errors="replace").strip()
    return {"success": proc.returncode == 0, "message": message}


def create_app(settings: ServerSettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or ServerSettings.from_env()
    app = FastAPI(title="Training Console Content")
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"])

    steps: list[StepInfo] = load_steps(settings.scenario_path)
    tabs_config = load_tabs_config(settings.scenario_path)
    logger.info("scenario path: %s", settings.scenario_path)
    logger.info("loaded %d steps", len(steps))
    if settings.editor_enabled:
        logger.info("editor tab enabled")

    @app.exception_handler(ApiError)
    async def api_error(_request: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(ScenarioError)
    async def scenario_error(_request: Request, exc: ScenarioError) -> JSONResponse:
        return JSONResponse({"error": exc.message}, status_code=exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(
        _request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse({"error": str(exc.detail)}, status_code=exc.status_code)

    def step_for(number: str) -> tuple[int, StepInfo]:
        try:
            n = int(number)
        except ValueError:
            n = 0
        if n < 1:
            raise ApiError(400, "invalid step number")
        if n > len(steps):
            raise ApiError(404, "step not found")
        return n, steps[n - 1]

    @app.get("/api/scenario")
    async def get_scenario() -> dict:
        return load_scenario(settings.scenario_path, len(steps))

    @app.get("/api/steps")
    async def get_steps() -> list:
        return [
            {"number": i, "title": info.title, "hasCheck": info.has_check}
            for i, info in enumerate(steps, start=1)
        ]

    @app.get("/api/steps/{number}")
    async def get_step(number: str) -> dict:
        n, info = step_for(number)
        return {
            "number": n,
            "title": info.title,
            "content": info.content,
            "hasCheck": info.has_check,
        }

    @app.post("/api/steps/{number}/check")
    async def check_step(number: str) -> dict:
        n, info = step_for(number)
        if not info.has_check:
            raise ApiError(404, "no check script for this step")
        logger.info("running check for step %d", n)
        return await run_check(
            settings.check_command, info.check, settings.check_timeout
        )

    @app.get("/api/tabs")
    async def get_tabs(request: Request) -> dict:
        host = request.headers.get("host", "")
        scheme = "http"
        if (
            request.headers.get("x-forwarded-proto") == "https"
            or request.url.scheme == "https"
        ):
            scheme = "https"
        return build_tabs(settings, tabs_config, host, scheme)

    @app.get("/api/health")
    async def health() -> dict:
        return {"status": "ok", "steps": len(steps)}

    return app
