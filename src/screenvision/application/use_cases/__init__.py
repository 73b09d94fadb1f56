"""Use cases."""

from screenvision.application.use_cases.analysis_orchestrator import (
    AnalysisOrchestrator,
    SessionState,
)

__all__ = [
    "AnalysisOrchestrator",
    "SessionState",
]
