from fastapi import APIRouter, Depends
from fastapi.responses import Response

from marketplace.context import MarketplaceContext
from marketplace.dependencies import get_context, require_user
from marketplace.models.quotation import Quotation
from marketplace.models.user import User
from marketplace.schemas.quotation import DecisionResponse, QuotationCreate, QuotationDecision, QuotationResponse
from marketplace.schemas.job import ReasonRequest
from marketplace.services import job_service
from marketplace.services.pdf_service import generate_quotation_pdf

router = APIRouter(tags=["quotations"])


def _quotation_to_response(quotation: Quotation) -> QuotationResponse:
    return QuotationResponse(
        id=quotation.id,
        job_id=quotation.job_id,
        professional_id=quotation.professional_id,
        total_price=quotation.total_price,
        price_currency=quotation.price_currency,
        description=quotation.description,
        estimated_hours=quotation.estimated_hours,
        estimated_start_date=quotation.estimated_start_date,
        estimated_completion_date=quotation.estimated_completion_date,
        status=quotation.status,
        valid_until=quotation.valid_until,
        includes_materials=bool(quotation.includes_materials),
        materials_description=quotation.materials_description,
        materials_cost=quotation.materials_cost or 0,
        terms_and_conditions=quotation.terms_and_conditions,
        professional_notes=quotation.professional_notes,
        client_feedback=quotation.client_feedback,
        responded_at=quotation.responded_at,
        created_at=quotation.created_at,
    )


def _decision(ctx: MarketplaceContext, quotation_id: str, decision: str, user: User,
              feedback: str | None = None) -> DecisionResponse:
    job, quotation = job_service.respond_to_quotation(ctx, quotation_id, decision, user.id, feedback)
    return DecisionResponse(job_id=job.id, job_status=job.status, quotation=_quotation_to_response(quotation))


@router.post("/jobs/{job_id}/quotations", response_model=QuotationResponse, status_code=201)
async def submit_quotation(
    job_id: str, req: QuotationCreate,
    user: User = Depends(require_user), ctx: MarketplaceContext = Depends(get_context),
):
    return _quotation_to_response(job_service.submit_quotation(ctx, job_id, user.id, req))


@router.get("/jobs/{job_id}/quotations", response_model=list[QuotationResponse])
async def list_quotations(
    job_id: str, user: User = Depends(require_user), ctx: MarketplaceContext = Depends(get_context),
):
    return [_quotation_to_response(q) for q in job_service.list_job_quotations(ctx, job_id, user.id)]


@router.get("/quotations/{quotation_id}", response_model=QuotationResponse)
async def get_quotation(
    quotation_id: str, user: User = Depends(require_user), ctx: MarketplaceContext = Depends(get_context),
):
    return _quotation_to_response(job_service.get_quotation(ctx, quotation_id, user.id))


@router.post("/quotations/{quotation_id}/respond", response_model=DecisionResponse)
async def respond(
    quotation_id: str, req: QuotationDecision,
    user: User = Depends(require_user), ctx: MarketplaceContext = Depends(get_context),
):
    return _decision(ctx, quotation_id, req.decision, user, req.feedback)


@router.post("/quotations/{quotation_id}/accept", response_model=DecisionResponse)
async def accept(
    quotation_id: str, user: User = Depends(require_user), ctx: MarketplaceContext = Depends(get_context),
):
    return _decision(ctx, quotation_id, "accept", user)


@router.post("/quotations/{quotation_id}/reject", response_model=DecisionResponse)
async def reject(
    quotation_id: str, req: ReasonRequest | None = None,
    user: User = Depends(require_user), ctx: MarketplaceContext = Depends(get_context),
):
    return _decision(ctx, quotation_id, "reject", user, req.reason if req else None)


@router.post("/quotations/{quotation_id}/withdraw", response_model=QuotationResponse)
async def withdraw(
    quotation_id: str, user: User = Depends(require_user), ctx: MarketplaceContext = Depends(get_context),
):
    return _quotation_to_response(job_service.withdraw_quotation(ctx, quotation_id, user.id))


@router.get("/quotations/{quotation_id}/pdf")
async def quotation_pdf(
    quotation_id: str, user: User = Depends(require_user), ctx: MarketplaceContext = Depends(get_context),
):
    quotation = job_service.get_quotation(ctx, quotation_id, user.id)
    job = quotation.job
    pdf_bytes = generate_quotation_pdf(
        quotation, job,
        professional_name=quotation.professional.full_name,
        client_name=job.client.full_name,
    )
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="quotation_{job.job_number}_{quotation.id[:8]}.pdf"'},
    )
