from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import get_owner_id, verify_api_key
from server.models.requests import DetectFormRequest, RefineRequest, SubmissionRequest, SuggestRequest
from server.models.responses import FormResponse, SubmissionResponse, SuggestResponse
from shared.models.suggestion import RefinementResult

router = APIRouter(prefix="/forms", tags=["forms"], dependencies=[Depends(verify_api_key)])


@router.post("/detect")
async def detect_form(
    request: Request,
    body: DetectFormRequest,
    owner_id: str = Depends(get_owner_id),
) -> FormResponse:
    """Extract the fields of an HTML form and suggest a value for each of them.

    Args:
        request (Request): FastAPI request (provides app.state.form_service).
        body (DetectFormRequest): Form markup plus the page URL and domain.
        owner_id (str): Owner from the X-User-Id header.

    Returns:
        FormResponse: The stored form with its ranked suggestions per field.
    """
    form_service = request.app.state.form_service
    form = await form_service.detect_form(owner_id, body.html, url=body.url, domain=body.domain)
    return FormResponse.from_record(form)


@router.post("/suggest")
async def suggest_values(
    request: Request,
    body: SuggestRequest,
    owner_id: str = Depends(get_owner_id),
) -> SuggestResponse:
    """Suggest values for already extracted fields without storing a form."""
    autofill_service = request.app.state.autofill_service
    suggestions = await autofill_service.suggest(owner_id, body.fields, form_context=body.form_context)
    return SuggestResponse(suggestions=suggestions)


@router.get("/{form_id}")
async def get_form(
    request: Request,
    form_id: str,
    owner_id: str = Depends(get_owner_id),
) -> FormResponse:
    form = await request.app.state.form_service.get_form(owner_id, form_id)
    return FormResponse.from_record(form)


@router.post("/{form_id}/fields/{field_name}/refine")
async def refine_field(
    request: Request,
    form_id: str,
    field_name: str,
    body: RefineRequest,
    owner_id: str = Depends(get_owner_id),
) -> RefinementResult:
    """Regenerate one field's suggestions with extra context.

    Args:
        request (Request): FastAPI request (provides app.state.refinement_service).
        form_id (str): The detected form.
        field_name (str): The field to refine.
        body (RefineRequest): Free-text context, custom instruction and document ids.
        owner_id (str): Owner from the X-User-Id header.

    Returns:
        RefinementResult: The new candidates and the merged suggestion list.
    """
    refinement_service = request.app.state.refinement_service
    return await refinement_service.refine(
        owner_id,
        form_id,
        field_name,
        context_text=body.context_text,
        custom_prompt=body.custom_prompt,
        document_ids=body.document_ids,
    )


@router.post("/{form_id}/submissions")
async def save_submission(
    request: Request,
    form_id: str,
    body: SubmissionRequest,
    owner_id: str = Depends(get_owner_id),
) -> SubmissionResponse:
    """Store the values the user submitted and learn them as context."""
    form_service = request.app.state.form_service
    _, created = await form_service.save_submission(
        owner_id,
        form_id,
        body.filled_values,
        fields=body.fields,
        url=body.url,
        domain=body.domain,
    )
    return SubmissionResponse(form_id=form_id, context_entries_created=created)
