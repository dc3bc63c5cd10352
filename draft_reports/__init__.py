from __future__ import annotations  # Draft export package exports

from .export import DraftExport, export_draft, write_export
from .pdf import generate_draft_pdf

__all__ = ["DraftExport", "export_draft", "generate_draft_pdf", "write_export"]
