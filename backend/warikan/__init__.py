from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from flask import Flask
from flask_cors import CORS

from warikan.api.routes import api_bp
from warikan.config import Config
from warikan.domain.models import SUPPORTED_GRANULARITIES, RoundingMode


def _check_config(app: Flask) -> None:
    granularity = app.config["DEFAULT_GRANULARITY"]
    if granularity not in SUPPORTED_GRANULARITIES:
        raise RuntimeError(
            f"WARIKAN_DEFAULT_GRANULARITY must be one of {list(SUPPORTED_GRANULARITIES)}, got {granularity!r}"
        )
    mode = app.config["DEFAULT_MODE"]
    if mode not in {m.value for m in RoundingMode}:
        raise RuntimeError(f"WARIKAN_DEFAULT_MODE must be nearest, ceil or floor, got {mode!r}")
    if app.config["MAX_PARTICIPANTS"] < 1:
        raise RuntimeError("WARIKAN_MAX_PARTICIPANTS must be >= 1")


def create_app(overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)
    _check_config(app)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    CORS(app)  # frontend is served from a different origin in dev

    app.register_blueprint(api_bp)
    return app
