"""
Document repositories: the raw upstream client and its cached, protected wrapper.
"""

from docshield.repositories.base import BaseDocumentRepository
from docshield.repositories.cached import CachedDocumentRepository, CacheTTL
from docshield.repositories.http import HttpDocumentRepository
from docshield.repositories.models import Document, Workspace

__all__ = [
    "BaseDocumentRepository",
    "CachedDocumentRepository",
    "CacheTTL",
    "HttpDocumentRepository",
    "Document",
    "Workspace",
]
