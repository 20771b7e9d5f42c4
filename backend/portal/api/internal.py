"""Internal API endpoints, called by the payment webhook relay."""
from fastapi import APIRouter, Depends

from portal.auth.internal_secret import verify_internal_secret
from portal.dependencies import get_payment_reconciler
from portal.schemas.project import PaymentUpdateRequest, PaymentUpdateResponse
from portal.services.payment_reconciler import PaymentReconciler
from portal.utils.logger import logger

router = APIRouter(
    prefix="/api/internal",
    tags=["internal"],
    dependencies=[Depends(verify_internal_secret)],
)


@router.post("/payment-update", response_model=PaymentUpdateResponse)
async def update_project_payment(
    request: PaymentUpdateRequest,
    reconciler: PaymentReconciler = Depends(get_payment_reconciler),
) -> PaymentUpdateResponse:
    """
    Apply a payment status event to a project.

    Requires the ``X-Internal-Secret`` header. A ``paid`` event for a project
    in ``design_approved`` also moves it to ``development``.
    """
    logger.info(f"[Internal API] Update project {request.projectId}: paymentStatus = {request.paymentStatus}")
    project = await reconciler.reconcile(
        request.projectId,
        request.paymentStatus,
        request.paymentCompletedAt,
    )
    return PaymentUpdateResponse(
        success=True,
        projectId=project.id,
        paymentStatus=project.paymentStatus,
        phase=project.phase,
        paymentCompletedAt=project.paymentCompletedAt,
    )
