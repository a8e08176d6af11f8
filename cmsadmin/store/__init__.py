"""
Document store layer.

All persistence lives here and ONLY here. Handlers receive a DocumentStore.
"""

from cmsadmin.store.base import Document, DocumentStore, Query
from cmsadmin.store.memory import MemoryDocumentStore
from cmsadmin.store.postgres import PostgresDocumentStore

__all__ = [
    "Document",
    "DocumentStore",
    "Query",
    "MemoryDocumentStore",
    "PostgresDocumentStore",
]
