from fastapi import APIRouter, Depends, HTTPException, Request

from server.dependencies.auth import get_owner_id, verify_api_key
from server.models.requests import ContextSearchRequest, ManualContextRequest
from server.models.responses import ContextEntry, ContextSearchResponse

router = APIRouter(prefix="/context", tags=["context"], dependencies=[Depends(verify_api_key)])


@router.post("")
async def add_context(
    request: Request,
    body: ManualContextRequest,
    owner_id: str = Depends(get_owner_id),
) -> ContextEntry:
    """Store a manually entered fact, e.g. key "Phone", value "+49 151 ..."."""
    ingestion_service = request.app.state.ingestion_service
    try:
        chunk = await ingestion_service.add_manual_context(owner_id, body.key, body.value, body.tags)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ContextEntry.from_chunk(chunk)


@router.post("/search")
async def search_context(
    request: Request,
    body: ContextSearchRequest,
    owner_id: str = Depends(get_owner_id),
) -> ContextSearchResponse:
    """Semantic search over the owner's context.

    Results flagged from_fallback come from the recency fallback and carry
    a nominal score of 1.0.
    """
    autofill_service = request.app.state.autofill_service
    hits = await autofill_service.search_context(owner_id, body.query, limit=body.limit, min_score=body.min_score)
    results = [ContextEntry.from_scored(hit) for hit in hits]
    return ContextSearchResponse(query=body.query, results=results, total=len(results))
