from __future__ import annotations

import os

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

# Frontends served by local dev servers
DEV_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
]


def add_default_middlewares(app: FastAPI) -> None:
    env = os.getenv("ENV", "development")
    if env in ("development", "staging"):
        allowed_origins = DEV_ORIGINS
    else:
        allowed_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "PUT"],
        allow_headers=["*"],
    )
