"""
Database Module
"""
from .connection import open_store, session_scope, store_url
from .models import DATASET_METADATA, OlapBase, OltpBase

__all__ = [
    "open_store",
    "session_scope",
    "store_url",
    "DATASET_METADATA",
    "OlapBase",
    "OltpBase",
]
