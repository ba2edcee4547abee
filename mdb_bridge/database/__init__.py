"""
Database layer for MDB_BRIDGE.

Binds connections to collections and exposes the DocumentAdapter facade.
"""

from .adapter import DocumentAdapter
from .collection import CollectionHandle, bind
from .cursor import DocumentStream
from .translator import ResultTranslator, to_plain

__all__ = [
    "DocumentAdapter",
    "CollectionHandle",
    "bind",
    "DocumentStream",
    "ResultTranslator",
    "to_plain",
]
