"""
CORS middleware configuration.
Origins come from CORS_ORIGINS; the search UI is the only expected caller.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from services.shopsearch.config import settings


def setup_cors(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID"],
        max_age=600,
    )
