from .local import LocalBackend

__all__ = ["LocalBackend"]
