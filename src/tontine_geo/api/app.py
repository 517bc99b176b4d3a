# src/tontine_geo/api/app.py
"""
FastAPI application wiring.

This file creates the `FastAPI` instance and mounts the routes. Business logic lives in
`tontine_geo.search` and `tontine_geo.storage`; `tontine_geo.api.routes` only maps HTTP
requests onto them.
"""

from __future__ import annotations

import os

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from tontine_geo.core.logging import configure_logging

from .routes import router

configure_logging()

app = FastAPI(title="Tontine Geo API", version="0.1.0")

# CORS (dev-friendly): allow the local front end to call this API.
# Configure via env:
# - TONTINE_GEO_CORS_ORIGINS="http://localhost:5173,http://127.0.0.1:5173"
# - TONTINE_GEO_CORS_ALLOW_LOCAL=0 to disable the default localhost allowance
cors_origins = [s.strip() for s in os.getenv("TONTINE_GEO_CORS_ORIGINS", "").split(",") if s.strip()]
cors_allow_local = os.getenv("TONTINE_GEO_CORS_ALLOW_LOCAL", "1").strip().lower() in {"1", "true", "yes", "y"}
cors_origin_regex = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$" if cors_allow_local and not cors_origins else ""
if cors_origins or cors_origin_regex:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_origin_regex=cors_origin_regex or None,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(router)
