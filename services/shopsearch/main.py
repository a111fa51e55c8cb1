"""
Shopsearch FastAPI service — personalized hybrid product search.

Entrypoint: uvicorn services.shopsearch.main:app --host 0.0.0.0 --port 8000
"""

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from starlette.responses import JSONResponse

from services.shopsearch.catalog.inventory import ProductInventory
from services.shopsearch.config import ConfigurationError, settings
from services.shopsearch.embedding.service import EmbeddingGateway, embedding_service
from services.shopsearch.intent.agent import build_agent
from services.shopsearch.intent.analyzer import CategoryBrandAnalyzer
from services.shopsearch.middleware.cors import setup_cors
from services.shopsearch.middleware.sentry import setup_sentry
from services.shopsearch.persona.store import PersonaStore
from services.shopsearch.pipeline.service import SearchIntentPipeline
from services.shopsearch.routers import catalog, health, personas, search
from services.shopsearch.search.engine import HybridSearchEngine
from services.shopsearch.search.qdrant_index import QdrantProductIndex
from services.shopsearch.vectors.builder import VectorBuilder

logger = logging.getLogger(__name__)


def build_services(app: FastAPI, *, agent=None, product_index=None, embedder=None) -> None:
    """Wire the search stack onto app.state. Overrides are for tests."""
    persona_store = PersonaStore(capacity=settings.recent_action_capacity)
    inventory = ProductInventory(settings.inventory_path or None)
    embedder = embedder or EmbeddingGateway(embedding_service)
    product_index = product_index or QdrantProductIndex()

    analyzer = CategoryBrandAnalyzer(inventory, persona_store, agent=agent)
    vector_builder = VectorBuilder(embedder, persona_store)
    engine = HybridSearchEngine(product_index)

    app.state.settings = settings
    app.state.agent = agent
    app.state.persona_store = persona_store
    app.state.inventory = inventory
    app.state.embedder = embedder
    app.state.product_index = product_index
    app.state.analyzer = analyzer
    app.state.vector_builder = vector_builder
    app.state.search_pipeline = SearchIntentPipeline(analyzer, vector_builder, engine)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    if not settings.qdrant_url:
        raise ConfigurationError("QDRANT_URL is required")

    setup_sentry()
    build_services(app, agent=build_agent())

    try:
        if not await app.state.product_index.index_exists():
            logger.warning(
                "Collection %s does not exist yet; searches fail until products are ingested",
                settings.products_collection,
            )
    except Exception as exc:
        logger.warning(
            "Qdrant connection failed at startup: %s; searches fail until the index is reachable",
            exc,
        )

    yield

    await app.state.product_index.close()


app = FastAPI(
    title="Shopsearch API",
    version=settings.app_version,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url=None,
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(search.router)
app.include_router(personas.router)
app.include_router(catalog.router)

# CORS (needs to be outermost to handle preflight)
setup_cors(app)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next) -> Response:
    request_id = request.headers.get("x-request-id", str(uuid.uuid4()))
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# -- Exception Handlers --

def _error(request: Request, status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "error": {"code": code, "message": message},
            "requestId": getattr(request.state, "request_id", str(uuid.uuid4())),
        },
    )


@app.exception_handler(HTTPException)
async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    code = "NOT_FOUND" if exc.status_code == 404 else "HTTP_ERROR"
    return _error(request, exc.status_code, code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error(request, 422, "VALIDATION_ERROR", str(exc.errors()))


@app.exception_handler(500)
async def internal_error_handler(request: Request, exc) -> JSONResponse:
    logger.error("Unhandled error on %s: %s", request.url.path, exc)
    return _error(request, 500, "INTERNAL_ERROR", "An unexpected error occurred.")
