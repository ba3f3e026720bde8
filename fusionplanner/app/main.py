# File: fusionplanner/app/main.py
# Version: v0.1.0
"""
FastAPI app entry.

- Mounts the fusion-site endpoints under /api/v1/fusion.
- /healthz for liveness probes.
"""
from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fusionplanner.app.api.v1.fusion.router import router as fusion_router
from fusionplanner.app.core.config import settings

app = FastAPI(
    title=f"{settings.APP_NAME} API",
    version=settings.APP_VERSION,
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    docs_url=f"{settings.API_PREFIX}/docs",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(fusion_router)


@app.get("/healthz")
def healthz():
    return {"status": "ok"}
