"""Application services."""

from screenvision.application.services.auto_analyzer import AutoAnalyzer
from screenvision.application.services.template_catalog import TemplateCatalog

__all__ = ["AutoAnalyzer", "TemplateCatalog"]
