from .settings import AuthSettings, get_auth_settings

__all__ = ["AuthSettings", "get_auth_settings"]
