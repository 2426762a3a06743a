from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status

from server.dependencies.auth import get_owner_id, verify_api_key
from server.models.requests import DocumentSubmitRequest
from server.models.responses import DocumentAcceptedResponse
from shared.models.document import DocumentStatus

router = APIRouter(prefix="/documents", tags=["documents"], dependencies=[Depends(verify_api_key)])


@router.post("", status_code=status.HTTP_202_ACCEPTED)
async def submit_document(
    request: Request,
    body: DocumentSubmitRequest,
    background_tasks: BackgroundTasks,
    owner_id: str = Depends(get_owner_id),
) -> DocumentAcceptedResponse:
    """Accept extracted document text and process it in the background.

    Args:
        request (Request): FastAPI request (provides app.state.ingestion_service).
        body (DocumentSubmitRequest): File name, extracted text and tags.
        background_tasks (BackgroundTasks): FastAPI background task queue.
        owner_id (str): Owner from the X-User-Id header.

    Returns:
        DocumentAcceptedResponse: The new document id with status "pending".
            Poll GET /documents/{document_id}/status for progress.
    """
    ingestion_service = request.app.state.ingestion_service
    try:
        document = await ingestion_service.submit_document(owner_id, body.file_name, body.text, body.tags)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    background_tasks.add_task(ingestion_service.process_document, owner_id, document.document_id)
    return DocumentAcceptedResponse(
        document_id=document.document_id,
        file_name=document.file_name,
        status=document.status,
    )


@router.get("/{document_id}/status")
async def get_document_status(
    request: Request,
    document_id: str,
    owner_id: str = Depends(get_owner_id),
) -> DocumentStatus:
    return await request.app.state.ingestion_service.get_status(owner_id, document_id)


@router.delete("/{document_id}")
async def delete_document(
    request: Request,
    document_id: str,
    owner_id: str = Depends(get_owner_id),
) -> dict:
    """Delete a document and its context entries (best effort)."""
    await request.app.state.ingestion_service.delete_document(owner_id, document_id)
    return {"status": "deleted", "document_id": document_id}
