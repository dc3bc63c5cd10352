"""Pydantic schemas for the draft administration API."""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel

from draft_lifecycle.models import AdminUser, ValidationResult


class StageChangeReq(BaseModel):
    stage: str
    admin_user: AdminUser
    reason: Optional[str] = None
    rejection_reason: Optional[str] = None


class ExportReq(BaseModel):
    format: Literal["json", "pdf"] = "json"


class TransitionRefused(BaseModel):
    message: str
    validation: ValidationResult
