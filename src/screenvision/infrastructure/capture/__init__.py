"""Frame sources."""

from screenvision.infrastructure.capture.file_source import FileFrameSource

__all__ = ["FileFrameSource"]
