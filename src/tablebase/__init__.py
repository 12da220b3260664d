from tablebase.exceptions import TablebaseError

__version__ = "0.1.0"


def create_app(**kwargs):
    from tablebase.api.fastapi import create_app as _create_app

    return _create_app(**kwargs)


__all__ = ["TablebaseError", "create_app", "__version__"]
