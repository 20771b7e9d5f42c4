"""Application-wide constants."""


class Phase:
    """Project lifecycle phases."""
    ONBOARDING = "onboarding"
    INTAKE = "intake"  # Legacy alias of ONBOARDING
    DESIGN = "design"
    DESIGN_APPROVED = "design_approved"
    DEVELOPMENT = "development"
    REVIEW = "review"
    LIVE = "live"

    ALL = (ONBOARDING, INTAKE, DESIGN, DESIGN_APPROVED, DEVELOPMENT, REVIEW, LIVE)
    PRE_DESIGN = (ONBOARDING, INTAKE)


class PaymentStatus:
    """Payment status values reported by the payment provider."""
    PENDING = "pending"
    AWAITING_PAYMENT = "awaiting_payment"
    PAID = "paid"
    FAILED = "failed"

    ALL = (PENDING, AWAITING_PAYMENT, PAID, FAILED)


class NotificationEvent:
    """Templated notification events handed to the dispatcher."""
    READY_FOR_DESIGN_CLIENT = "ready_for_design_client"
    READY_FOR_DESIGN_DEVELOPER = "ready_for_design_developer"
    PHASE_CHANGED = "phase_changed"
    PASSWORD_RESET = "password_reset"
    PASSWORD_CHANGED = "password_changed"


# Credential lifetimes (seconds)
RESET_TOKEN_TTL = 60 * 60  # 1 hour
MAGIC_TOKEN_TTL = 7 * 24 * 60 * 60  # 7 days
MAGIC_SESSION_TTL = 5 * 60  # 5 minutes

# Key-value schema
PROJECTS_SET_KEY = "projects"
