"""Litestar ASGI application for the MediaFlow web API."""
from __future__ import annotations

from litestar import Litestar
from litestar.config.cors import CORSConfig
from litestar.logging import LoggingConfig

from webui.backend.routes.config import get_config, save_config
from webui.backend.routes.runs import cancel_run, check_plan, create_run, get_run
from webui.backend.routes.stream import stream_run


app = Litestar(
    route_handlers=[
        get_config,
        save_config,
        create_run,
        get_run,
        cancel_run,
        stream_run,
        check_plan,
    ],
    cors_config=CORSConfig(
        allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    ),
    logging_config=LoggingConfig(
        loggers={
            "mediaflow": {"level": "INFO", "handlers": ["queue_listener"]},
            "webui": {"level": "INFO", "handlers": ["queue_listener"]},
        }
    ),
)
