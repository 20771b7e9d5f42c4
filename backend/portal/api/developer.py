"""Developer dashboard endpoints."""
from fastapi import APIRouter, Depends

from portal.auth.developer import require_developer
from portal.dependencies import (
    get_credential_service,
    get_payment_reconciler,
    get_phase_engine,
    get_project_store,
)
from portal.schemas.auth import DeveloperLoginRequest, DeveloperLoginResponse, MessageResponse
from portal.schemas.project import (
    PasswordSetRequest,
    PaymentOverrideRequest,
    PaymentUpdateResponse,
    PhaseOverrideRequest,
    PhaseResponse,
    ProjectResponse,
    ProjectUpdate,
)
from portal.services.credentials import CredentialService
from portal.services.payment_reconciler import PaymentReconciler
from portal.services.phase_engine import PhaseEngine
from portal.services.project_store import ProjectStore

router = APIRouter(prefix="/api/developer", tags=["developer"])


@router.post("/login", response_model=DeveloperLoginResponse)
async def developer_login(
    request: DeveloperLoginRequest,
    credentials: CredentialService = Depends(get_credential_service),
) -> DeveloperLoginResponse:
    """Log in with a developer password and receive a bearer token."""
    token = await credentials.developer_login(request.password)
    return DeveloperLoginResponse(
        token=token,
        expiresInSeconds=credentials.settings.developer_session_hours * 60 * 60,
    )


@router.post("/logout", response_model=MessageResponse)
async def developer_logout(
    token: str = Depends(require_developer),
    credentials: CredentialService = Depends(get_credential_service),
) -> MessageResponse:
    await credentials.developer_logout(token)
    return MessageResponse(success=True, message="Logged out")


@router.get("/projects", response_model=list[ProjectResponse], dependencies=[Depends(require_developer)])
async def list_projects(
    projects: ProjectStore = Depends(get_project_store),
) -> list[ProjectResponse]:
    """All projects, newest first."""
    return [ProjectResponse.from_project(p) for p in await projects.list_all()]


@router.patch("/project/{project_id}", response_model=ProjectResponse, dependencies=[Depends(require_developer)])
async def update_project(
    project_id: str,
    request: ProjectUpdate,
    projects: ProjectStore = Depends(get_project_store),
) -> ProjectResponse:
    """
    Update customer, onboarding or package fields.

    Phase and payment status have their own endpoints. Pass
    ``expectedVersion`` to make the update fail with 409 if someone else
    changed the project since it was loaded.
    """
    partial = request.model_dump(exclude={"expectedVersion"}, exclude_none=True)
    updated = await projects.update(project_id, partial, expected_version=request.expectedVersion)
    return ProjectResponse.from_project(updated)


@router.patch("/project/{project_id}/phase", response_model=PhaseResponse, dependencies=[Depends(require_developer)])
async def override_phase(
    project_id: str,
    request: PhaseOverrideRequest,
    phases: PhaseEngine = Depends(get_phase_engine),
) -> PhaseResponse:
    """Set any phase directly; the client is notified when it changes."""
    result = await phases.override_phase(project_id, request.phase)
    return PhaseResponse(
        projectId=result.project.id,
        phase=result.project.phase,
        changed=result.changed,
        readyForDesignAt=result.project.readyForDesignAt,
    )


@router.patch(
    "/project/{project_id}/payment",
    response_model=PaymentUpdateResponse,
    dependencies=[Depends(require_developer)],
)
async def override_payment(
    project_id: str,
    request: PaymentOverrideRequest,
    reconciler: PaymentReconciler = Depends(get_payment_reconciler),
) -> PaymentUpdateResponse:
    """Set the payment status by hand (no automatic phase change)."""
    project = await reconciler.override_status(project_id, request.paymentStatus)
    return PaymentUpdateResponse(
        success=True,
        projectId=project.id,
        paymentStatus=project.paymentStatus,
        phase=project.phase,
        paymentCompletedAt=project.paymentCompletedAt,
    )


@router.post("/project/{project_id}/password", response_model=MessageResponse, dependencies=[Depends(require_developer)])
async def set_project_password(
    project_id: str,
    request: PasswordSetRequest,
    credentials: CredentialService = Depends(get_credential_service),
) -> MessageResponse:
    """Set or reset a project's password on behalf of the client."""
    await credentials.set_password(project_id, request.password)
    return MessageResponse(success=True, message="Password updated")
