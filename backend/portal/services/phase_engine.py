"""Phase engine: the only writer of a project's ``phase``.

Happy path::

    onboarding/intake -> design -> design_approved -> development -> review -> live

The client may move a project from onboarding to design once. Developers may
set any phase directly through :meth:`PhaseEngine.override_phase`.
"""
from dataclasses import dataclass
from typing import Optional

from portal.config import Settings, settings as default_settings
from portal.constants import NotificationEvent, PaymentStatus, Phase
from portal.models.project import Project
from portal.services.notifications import NotificationDispatcher
from portal.services.project_store import ProjectStore
from portal.utils.clock import Clock, utc_now
from portal.utils.exceptions import ConflictError, ValidationError
from portal.utils.logger import logger


@dataclass
class TransitionResult:
    """Outcome of a phase operation."""
    project: Project
    changed: bool


class PhaseEngine:
    """Validates and applies lifecycle transitions."""

    def __init__(
        self,
        projects: ProjectStore,
        dispatcher: NotificationDispatcher,
        now: Clock = utc_now,
        settings: Settings = default_settings,
    ):
        self.projects = projects
        self.dispatcher = dispatcher
        self.now = now
        self.settings = settings

    def project_url(self, project_id: str) -> str:
        return f"{self.settings.site_url}/project/{project_id}"

    async def mark_ready_for_design(self, project_id: str) -> TransitionResult:
        """
        Move a project from onboarding (or intake) to design.

        Calling this again once the project is in design succeeds without
        changing anything.

        Raises:
            NotFoundError: If the project does not exist
            ConflictError: If the project is in any other phase
        """
        project = await self.projects.get(project_id)

        if project.phase == Phase.DESIGN:
            return TransitionResult(project=project, changed=False)

        if project.phase not in Phase.PRE_DESIGN:
            raise ConflictError(
                "Project is not in onboarding phase",
                currentPhase=project.phase,
            )

        updated = await self.projects.update(
            project.id,
            {"phase": Phase.DESIGN, "readyForDesign": True, "readyForDesignAt": self.now()},
            expected_version=project.version,
            lifecycle=True,
        )
        await self.projects.log_activity(
            updated.id,
            "ready_for_design",
            "Client confirmed ready for design",
            sender="client",
        )
        logger.info(f"Project {updated.id} moved {project.phase} -> {Phase.DESIGN}")

        context = {
            "projectId": updated.id,
            "name": updated.customer.name,
            "companyName": updated.customer.companyName,
            "url": self.project_url(updated.id),
        }
        await self.dispatcher.dispatch(
            NotificationEvent.READY_FOR_DESIGN_CLIENT, updated.customer.email, context
        )
        await self.dispatcher.dispatch(
            NotificationEvent.READY_FOR_DESIGN_DEVELOPER, self.settings.developer_email, context
        )
        return TransitionResult(project=updated, changed=True)

    async def override_phase(self, project_id: str, phase: str) -> TransitionResult:
        """
        Set any phase directly (developer escape hatch).

        Raises:
            ValidationError: For an unknown phase
            NotFoundError: If the project does not exist
        """
        if phase not in Phase.ALL:
            raise ValidationError(f"Unknown phase: {phase}")

        project = await self.projects.get(project_id)
        if project.phase == phase:
            return TransitionResult(project=project, changed=False)

        updated = await self.projects.update(
            project.id,
            {"phase": phase},
            expected_version=project.version,
            lifecycle=True,
        )
        await self.projects.log_activity(
            updated.id,
            "phase_changed",
            f"Phase changed from {project.phase} to {phase}",
            sender="developer",
        )
        logger.info(f"Project {updated.id} phase overridden {project.phase} -> {phase}")
        await self.notify_phase_changed(updated)
        return TransitionResult(project=updated, changed=True)

    @staticmethod
    def phase_after_payment(project: Project, payment_status: str) -> Optional[str]:
        """Phase a payment event moves the project to, or None to stay put."""
        if payment_status == PaymentStatus.PAID and project.phase == Phase.DESIGN_APPROVED:
            return Phase.DEVELOPMENT
        return None

    async def notify_phase_changed(self, project: Project) -> bool:
        return await self.dispatcher.dispatch(
            NotificationEvent.PHASE_CHANGED,
            project.customer.email,
            {
                "projectId": project.id,
                "name": project.customer.name,
                "phase": project.phase,
                "url": self.project_url(project.id),
            },
        )
