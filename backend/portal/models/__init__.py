"""Models package."""
from portal.models.project import ActivityEntry, ChatMessage, Customer, Project

__all__ = ["Project", "Customer", "ChatMessage", "ActivityEntry"]
