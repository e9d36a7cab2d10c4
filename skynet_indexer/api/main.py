"""
HTTP surface: prompt search, reverse metadata lookup, health, and event ingest.

Usage:
    uvicorn skynet_indexer.api.main:app
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .deps import get_service
from .schemas import ErrorResponse, GetMetadataRequest, HealthResponse, SearchRequest
from ..core.config import VERSION, SkynetConfig, debug_enabled, get_config, validate_config
from ..core.errors import StoreUnavailable
from ..core.service import SkynetService
from ..util.logging import logger

router = APIRouter()


@router.post("/search", response_model=List[Dict[str, Any]])
def search_endpoint(request: SearchRequest, service: SkynetService = Depends(get_service)):
    """Search confirmed jobs by prompt substring."""
    return service.search.search_by_prompt(
        prompt=request.prompt,
        model=request.model,
        size=request.size,
    )


@router.post("/get_metadata", response_model=Dict[str, Any])
def get_metadata_endpoint(request: GetMetadataRequest, service: SkynetService = Depends(get_service)):
    """Full request metadata for a content reference, or {} when unknown."""
    return service.search.get_metadata_by_reference(request.cid)


def create_app(config: Optional[SkynetConfig] = None) -> FastAPI:
    """Build the FastAPI application; the service lives for the app's lifespan."""
    config = config or get_config()
    issues = validate_config(config)
    if issues:
        raise ValueError(f"Configuration invalid: {issues}")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        service = SkynetService(config)
        app.state.service = service
        service.start()
        yield
        service.stop()
        app.state.service = None

    app = FastAPI(
        title="Skynet Indexer API",
        version=VERSION,
        description="Correlates GPU job submissions with their confirmations and serves prompt search",
        docs_url="/docs" if config.debug else None,
        redoc_url="/redoc" if config.debug else None,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.get("/health", response_model=HealthResponse)
    def health_check_endpoint(service: SkynetService = Depends(get_service)):
        """Check system health."""
        status = service.status()
        db_health = status["db_health"]
        submissions = confirmations = 0
        if db_health:
            submissions = service.store.count_deltas()
            confirmations = service.store.count_actions()

        return HealthResponse(
            status="healthy" if db_health else "unhealthy",
            version=VERSION,
            db_health=db_health,
            pending_count=status["pending"]["pending"],
            submissions=submissions,
            confirmations=confirmations
        )

    app.include_router(router, prefix=config.api_prefix, tags=["search"])

    if config.ingest_api_enabled:
        from .ingest import router as ingest_router
        app.include_router(ingest_router, prefix="/ingest", tags=["ingest"])

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable_handler(request, exc):
        """Store failures fail the request only."""
        logger.error(f"Store unavailable for {request.url.path}: {exc}")
        content = ErrorResponse(
            error_type="STORE_UNAVAILABLE",
            message="Search store unavailable",
            details={"operation": exc.operation} if debug_enabled() else None
        )
        return JSONResponse(status_code=503, content=content.model_dump(mode="json"))

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        """Handle all unhandled exceptions."""
        logger.error(f"Unhandled exception: {exc}")
        content = {"detail": "Internal server error"}
        if debug_enabled():
            content["debug"] = str(exc)
        return JSONResponse(status_code=500, content=content)

    return app


app = create_app()
