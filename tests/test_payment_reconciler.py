"""Tests for payment status reconciliation."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from portal.constants import NotificationEvent
from portal.models.project import Project
from portal.services.payment_reconciler import PaymentReconciler
from portal.services.project_store import ProjectStore
from portal.utils.exceptions import NotFoundError, ValidationError

PAID_AT = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)


async def _in_phase(projects: ProjectStore, phase: str) -> None:
    await projects.update("WS-TEST1", {"phase": phase}, lifecycle=True)


async def test_paid_in_design_approved_advances(
    reconciler: PaymentReconciler, projects: ProjectStore, project: Project, dispatcher
) -> None:
    await _in_phase(projects, "design_approved")

    updated = await reconciler.reconcile("ws-test1", "paid", PAID_AT)

    assert updated.paymentStatus == "paid"
    assert updated.phase == "development"
    assert updated.paymentCompletedAt == PAID_AT
    assert dispatcher.events() == [NotificationEvent.PHASE_CHANGED]
    assert (await projects.activity("WS-TEST1"))[0].type == "phase_changed"


async def test_paid_in_review_keeps_phase(
    reconciler: PaymentReconciler, projects: ProjectStore, project: Project, dispatcher
) -> None:
    await _in_phase(projects, "review")

    updated = await reconciler.reconcile("WS-TEST1", "paid")

    assert updated.paymentStatus == "paid"
    assert updated.phase == "review"
    assert dispatcher.sent == []


@pytest.mark.parametrize("status", ["pending", "awaiting_payment", "failed"])
async def test_other_statuses_never_move_phase(
    reconciler: PaymentReconciler, projects: ProjectStore, project: Project, status: str
) -> None:
    await _in_phase(projects, "design_approved")
    updated = await reconciler.reconcile("WS-TEST1", status)
    assert updated.paymentStatus == status
    assert updated.phase == "design_approved"


async def test_replay_converges(
    reconciler: PaymentReconciler, projects: ProjectStore, project: Project, dispatcher
) -> None:
    await _in_phase(projects, "design_approved")

    first = await reconciler.reconcile("WS-TEST1", "paid", PAID_AT)
    second = await reconciler.reconcile("WS-TEST1", "paid", PAID_AT)

    assert (second.phase, second.paymentStatus, second.paymentCompletedAt) == (
        first.phase,
        first.paymentStatus,
        first.paymentCompletedAt,
    )
    assert len(dispatcher.sent) == 1


async def test_unknown_status(reconciler: PaymentReconciler, project: Project) -> None:
    with pytest.raises(ValidationError):
        await reconciler.reconcile("WS-TEST1", "refunded")


async def test_unknown_project(reconciler: PaymentReconciler) -> None:
    with pytest.raises(NotFoundError):
        await reconciler.reconcile("WS-NOPE", "paid")


async def test_override_status_has_no_phase_effect(
    reconciler: PaymentReconciler, projects: ProjectStore, project: Project
) -> None:
    await _in_phase(projects, "design_approved")

    updated = await reconciler.override_status("WS-TEST1", "paid")

    assert updated.paymentStatus == "paid"
    assert updated.phase == "design_approved"
    assert (await projects.activity("WS-TEST1"))[0].type == "payment_override"
