from .auth import bearer_token, current_claims, require_bearer
from .project import get_project, get_registry, project_name

__all__ = ["bearer_token", "current_claims", "get_project", "get_registry", "project_name", "require_bearer"]
