"""Content server for the training console."""

from __future__ import annotations

from pathlib import Path


def main(
    scenario: Path | None = None,
    port: int | None = None,
    host: str = "0.0.0.0",
) -> None:
    """Launch the content server (settings default to the environment)."""
    import uvicorn

    from .app import create_app
    from .scenario import ServerSettings

    settings = ServerSettings.from_env()
    if scenario is not None:
        settings.scenario_path = scenario
    if port is not None:
        settings.port = port

    app = create_app(settings)
    uvicorn.run(app, host=host, port=settings.port, log_level="info")
