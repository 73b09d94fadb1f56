"""Persistence layer."""

from screenvision.infrastructure.persistence.database import DatabaseManager
from screenvision.infrastructure.persistence.models import PromptTemplateModel
from screenvision.infrastructure.persistence.template_repository import (
    SQLitePromptTemplateRepository,
)

__all__ = [
    "DatabaseManager",
    "PromptTemplateModel",
    "SQLitePromptTemplateRepository",
]
