from __future__ import annotations

import importlib
import logging
import pkgutil
from types import ModuleType
from typing import Optional

from fastapi import FastAPI

logger = logging.getLogger(__name__)


def _should_skip_module(module_name: str) -> bool:
    return module_name.rsplit(".", 1)[-1].startswith("_")


def register_all_routers(app: FastAPI, *, base_package: Optional[str] = None, prefix: str = "") -> None:
    """
    Discover and include every router module under ``base_package``.

    - A module is included when it has a top-level ``router``.
    - Modules whose last segment starts with ``_`` are skipped.
    - ``ROUTER_PREFIX`` is appended to ``prefix``; ``ROUTER_TAG`` becomes the tag.

    A router module that fails to import is a programming error and is raised.
    """
    base_package = base_package or __name__
    package_module: ModuleType = importlib.import_module(base_package)
    if not hasattr(package_module, "__path__"):
        raise RuntimeError(f"Provided base_package '{base_package}' is not a package (no __path__).")

    for _, module_name, _ in pkgutil.walk_packages(package_module.__path__, prefix=f"{base_package}."):
        if _should_skip_module(module_name):
            logger.debug("Skipping router module %s", module_name)
            continue
        module = importlib.import_module(module_name)
        router = getattr(module, "router", None)
        if router is None:
            continue
        include_kwargs: dict = {"prefix": prefix.rstrip("/") + getattr(module, "ROUTER_PREFIX", "")}
        router_tag = getattr(module, "ROUTER_TAG", None)
        if router_tag:
            include_kwargs["tags"] = [router_tag]
        app.include_router(router, **include_kwargs)
        logger.debug("Included router %s at %s", module_name, include_kwargs["prefix"])
