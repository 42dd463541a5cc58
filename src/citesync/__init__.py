"""citesync - Citation consistency and change-reconciliation engine."""

from citesync.engine.export import ExportMode
from citesync.references.styles import CitationStyle
from citesync.session import DocumentSession, OperationResult

__version__ = "0.1.0"
__all__ = ["CitationStyle", "DocumentSession", "ExportMode", "OperationResult"]
