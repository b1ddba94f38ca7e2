"""API dependencies."""
from ..config import get_settings, Settings
from ..models.actions import get_default_catalog, ActionCatalog


def get_action_catalog() -> ActionCatalog:
    """Dependency for the unresolved action catalog."""
    return get_default_catalog()


def get_app_settings() -> Settings:
    """Dependency for application settings."""
    return get_settings()
