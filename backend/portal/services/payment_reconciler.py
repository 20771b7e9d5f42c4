"""Payment reconciler: applies payment-provider status events to projects."""
from datetime import datetime
from typing import Optional

from portal.constants import PaymentStatus
from portal.models.project import Project
from portal.services.phase_engine import PhaseEngine
from portal.services.project_store import ProjectStore
from portal.utils.exceptions import ValidationError
from portal.utils.logger import logger


class PaymentReconciler:
    """
    Sets ``paymentStatus`` from provider events.

    A ``paid`` event for a project in ``design_approved`` also advances it to
    ``development`` in the same write. No other combination moves the phase.
    Replaying an event converges on the same state.
    """

    def __init__(self, projects: ProjectStore, phases: PhaseEngine):
        self.projects = projects
        self.phases = phases

    async def reconcile(
        self,
        project_id: str,
        payment_status: str,
        payment_completed_at: Optional[datetime] = None,
    ) -> Project:
        """
        Apply a payment status event.

        Args:
            project_id: Project the payment belongs to
            payment_status: New status reported by the provider
            payment_completed_at: When the payment completed, if reported

        Returns:
            The updated project

        Raises:
            ValidationError: For an unknown payment status
            NotFoundError: If the project does not exist
        """
        if payment_status not in PaymentStatus.ALL:
            raise ValidationError(f"Unknown payment status: {payment_status}")

        project = await self.projects.get(project_id)
        changes = {"paymentStatus": payment_status}
        if payment_completed_at is not None:
            changes["paymentCompletedAt"] = payment_completed_at

        next_phase = self.phases.phase_after_payment(project, payment_status)
        if next_phase is not None:
            changes["phase"] = next_phase

        updated = await self.projects.update(
            project.id, changes, expected_version=project.version, lifecycle=True
        )
        logger.info(f"Project {updated.id} payment status {project.paymentStatus} -> {payment_status}")

        if next_phase is not None:
            await self.projects.log_activity(
                updated.id,
                "phase_changed",
                f"Payment received, phase changed from {project.phase} to {next_phase}",
            )
            logger.info(f"Project {updated.id} advanced to {next_phase} after payment")
            await self.phases.notify_phase_changed(updated)

        return updated

    async def override_status(self, project_id: str, payment_status: str) -> Project:
        """Set the payment status by hand (developer), without any phase effect."""
        if payment_status not in PaymentStatus.ALL:
            raise ValidationError(f"Unknown payment status: {payment_status}")

        project = await self.projects.get(project_id)
        updated = await self.projects.update(
            project.id,
            {"paymentStatus": payment_status},
            expected_version=project.version,
            lifecycle=True,
        )
        await self.projects.log_activity(
            updated.id,
            "payment_override",
            f"Payment status set to {payment_status}",
            sender="developer",
        )
        logger.info(f"Project {updated.id} payment status overridden to {payment_status}")
        return updated
