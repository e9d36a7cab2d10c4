"""
Ingest endpoints - feed indexer documents through the bundled host.
"""

from fastapi import APIRouter, Depends

from .deps import get_service
from .schemas import ActionDocument, DeltaDocument, IngestResponse
from ..core.schema import REQUEST_HASH_FIELD
from ..core.service import SkynetService

router = APIRouter()


@router.post("/delta", response_model=IngestResponse)
def ingest_delta(request: DeltaDocument, service: SkynetService = Depends(get_service)):
    """Index a table delta; queue rows of the configured contract enter the pending cache."""
    document = request.to_document()
    row_id = service.host.ingest_delta(document)
    return IngestResponse(
        indexed=row_id is not None,
        row_id=row_id,
        request_hash=document.get(REQUEST_HASH_FIELD)
    )


@router.post("/action", response_model=IngestResponse)
def ingest_action(request: ActionDocument, service: SkynetService = Depends(get_service)):
    """Index a contract action; submit actions are correlated with pending requests."""
    document = request.to_document()
    row_id = service.host.ingest_action(document)
    return IngestResponse(
        indexed=row_id is not None,
        row_id=row_id,
        request_hash=document.get(REQUEST_HASH_FIELD)
    )
