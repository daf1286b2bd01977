"""Entrypoint for running the Standup Pulse API via `python -m standup_pulse.main`."""

from __future__ import annotations

import logging
import os

import uvicorn

from .config import load_settings


def run() -> None:
    env_file = os.getenv("STANDUP_PULSE_ENV")
    settings = load_settings(env_file)
    log_level = os.getenv("LOG_LEVEL", "info")
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler()],
    )
    # api builds a module-level app from the environment on import
    from .api import create_app

    app = create_app(settings)
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        log_level=log_level,
    )


if __name__ == "__main__":  # pragma: no cover
    run()
