"""Export drafts as downloadable JSON or PDF documents."""
from __future__ import annotations

import os
from typing import Literal, Optional

from pydantic import BaseModel

from config.settings import settings
from draft_lifecycle.models import Draft

from .pdf import generate_draft_pdf

ExportFormat = Literal["json", "pdf"]

MEDIA_TYPES = {
    "json": "application/json",
    "pdf": "application/pdf",
}


class DraftExport(BaseModel):
    filename: str
    media_type: str
    payload: bytes

    @property
    def content_disposition(self) -> str:
        return f'attachment; filename="{self.filename}"'


def export_draft(draft: Draft, fmt: str) -> DraftExport:
    """Serialize ``draft`` in ``fmt``; unknown formats raise ``ValueError``."""

    normalized = (fmt or "").strip().lower()
    if normalized == "json":
        payload = draft.model_dump_json(indent=2).encode("utf-8")
    elif normalized == "pdf":
        payload = generate_draft_pdf(draft)
    else:
        raise ValueError(f'Invalid export format {fmt!r}. Use "json" or "pdf"')
    return DraftExport(
        filename=f"draft-{draft.id}.{normalized}",
        media_type=MEDIA_TYPES[normalized],
        payload=payload,
    )


def write_export(export: DraftExport, directory: Optional[str] = None) -> str:
    """Write ``export`` under ``directory`` (default ``EXPORT_DIR``) and return the path."""

    target_dir = directory or settings.EXPORT_DIR
    os.makedirs(target_dir, exist_ok=True)
    path = os.path.join(target_dir, export.filename)
    with open(path, "wb") as handle:
        handle.write(export.payload)
    return path


__all__ = ["DraftExport", "ExportFormat", "export_draft", "write_export"]
