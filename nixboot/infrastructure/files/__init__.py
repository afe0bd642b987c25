"""
Document storage
"""
from .document_store import LocalDocumentStore, SudoDocumentStore

__all__ = ["LocalDocumentStore", "SudoDocumentStore"]
