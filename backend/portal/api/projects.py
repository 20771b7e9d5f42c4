"""Projects API endpoints (client portal)."""
from fastapi import APIRouter, Depends, Query, status

from portal.dependencies import get_credential_service, get_phase_engine, get_project_store
from portal.models.project import ActivityEntry, ChatMessage
from portal.schemas.project import (
    MessageCreate,
    MessagesReadResponse,
    PhaseResponse,
    ProjectCreate,
    ProjectResponse,
)
from portal.services.credentials import CredentialService
from portal.services.phase_engine import PhaseEngine
from portal.services.project_store import ProjectStore
from portal.utils.logger import logger

router = APIRouter(prefix="/api", tags=["projects"])


@router.post("/projects", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    project: ProjectCreate,
    projects: ProjectStore = Depends(get_project_store),
    credentials: CredentialService = Depends(get_credential_service),
) -> ProjectResponse:
    """
    Create a project from an intake submission.

    The optional password is stored as a digest under its own key, never on
    the project record.
    """
    if project.password:
        credentials.check_password_strength(project.password)

    draft = project.model_dump(exclude={"password"}, exclude_none=True)
    created = await projects.create(draft)
    if project.password:
        await credentials.set_password(created.id, project.password)
    return ProjectResponse.from_project(created)


@router.get("/project/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    projects: ProjectStore = Depends(get_project_store),
) -> ProjectResponse:
    """Get the status view of a project (case-insensitive id)."""
    project = await projects.get(project_id)
    return ProjectResponse.from_project(project)


@router.post("/project/{project_id}/ready-for-design", response_model=PhaseResponse)
async def ready_for_design(
    project_id: str,
    phases: PhaseEngine = Depends(get_phase_engine),
) -> PhaseResponse:
    """
    Mark a project as ready for design.

    Moves onboarding to design. Repeating the call once in design is a
    no-op success; any other phase answers 409.
    """
    result = await phases.mark_ready_for_design(project_id)
    return PhaseResponse(
        projectId=result.project.id,
        phase=result.project.phase,
        changed=result.changed,
        readyForDesignAt=result.project.readyForDesignAt,
    )


@router.post("/project/{project_id}/message", response_model=ChatMessage, status_code=status.HTTP_201_CREATED)
async def send_message(
    project_id: str,
    request: MessageCreate,
    projects: ProjectStore = Depends(get_project_store),
) -> ChatMessage:
    """Append a message to the project conversation."""
    message = await projects.add_message(project_id, request.sender, request.message)
    logger.info(f"Message sent for project {project_id.upper()} from {request.sender}")
    return message


@router.post("/project/{project_id}/messages/read", response_model=MessagesReadResponse)
async def mark_messages_read(
    project_id: str,
    projects: ProjectStore = Depends(get_project_store),
) -> MessagesReadResponse:
    """Mark all developer messages as read (the client is reading them)."""
    marked = await projects.mark_messages_read(project_id, sender="developer")
    return MessagesReadResponse(success=True, marked=marked)


@router.get("/project/{project_id}/activity", response_model=list[ActivityEntry])
async def get_activity(
    project_id: str,
    limit: int = Query(50, ge=1, le=200, description="Maximum number of entries"),
    projects: ProjectStore = Depends(get_project_store),
) -> list[ActivityEntry]:
    """Get the project's activity log, newest first."""
    return await projects.activity(project_id, limit=limit)
