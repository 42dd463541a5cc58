"""Citation consistency engine: linking, sequencing, conversion, reconciliation and export."""

from citesync.engine.cancellation import CancellationToken, checkpoint
from citesync.engine.linker import CitationLinks, LinkResolution, LinkResolver, infer_author_year_links
from citesync.engine.sequence import SequenceValidator
from citesync.engine.resequencer import Resequencer, SortOrder
from citesync.engine.converter import ConversionResult, StyleConverter
from citesync.engine.reconciler import ChangeReconciler
from citesync.engine.export import ExportMaterializer, ExportMode, ExportResult, export_filename
from citesync.engine.issues import build_issues

__all__ = [
    "CancellationToken",
    "ChangeReconciler",
    "CitationLinks",
    "ConversionResult",
    "ExportMaterializer",
    "ExportMode",
    "ExportResult",
    "LinkResolution",
    "LinkResolver",
    "Resequencer",
    "SequenceValidator",
    "SortOrder",
    "StyleConverter",
    "build_issues",
    "checkpoint",
    "export_filename",
    "infer_author_year_links",
]
