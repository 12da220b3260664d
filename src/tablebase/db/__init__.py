from .query import CompiledQuery, compile_filter, compile_query
from .registry import USERS_TABLE, ProjectHandle, ProjectRegistry
from .store import FileCollection

__all__ = [
    "CompiledQuery",
    "compile_filter",
    "compile_query",
    "FileCollection",
    "ProjectHandle",
    "ProjectRegistry",
    "USERS_TABLE",
]
