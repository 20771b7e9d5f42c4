"""FastAPI dependencies wiring the services together."""
from fastapi import Depends

from portal.services.credentials import CredentialService
from portal.services.notifications import NotificationDispatcher, get_dispatcher
from portal.services.payment_reconciler import PaymentReconciler
from portal.services.phase_engine import PhaseEngine
from portal.services.project_store import ProjectStore
from portal.storage.kv import KeyValueStore, get_kv_store
from portal.utils.clock import Clock, utc_now


def get_clock() -> Clock:
    """Dependency for the current-time source (overridden in tests)."""
    return utc_now


def get_project_store(
    kv: KeyValueStore = Depends(get_kv_store),
    now: Clock = Depends(get_clock),
) -> ProjectStore:
    return ProjectStore(kv, now=now)


def get_credential_service(
    kv: KeyValueStore = Depends(get_kv_store),
    projects: ProjectStore = Depends(get_project_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    now: Clock = Depends(get_clock),
) -> CredentialService:
    return CredentialService(kv, projects, dispatcher, now=now)


def get_phase_engine(
    projects: ProjectStore = Depends(get_project_store),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    now: Clock = Depends(get_clock),
) -> PhaseEngine:
    return PhaseEngine(projects, dispatcher, now=now)


def get_payment_reconciler(
    projects: ProjectStore = Depends(get_project_store),
    phases: PhaseEngine = Depends(get_phase_engine),
) -> PaymentReconciler:
    return PaymentReconciler(projects, phases)
