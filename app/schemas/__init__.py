"""Pydantic schemas for request/response validation."""

from app.schemas.admin import (
    CatalogueReloadResponse,
    SeedDeactivateResponse,
    StrictnessRead,
    StrictnessUpdate,
)
from app.schemas.chat import (
    ChatProcessRequest,
    ChatProcessResponse,
    DiagnosticsRequest,
    DiagnosticsResponse,
    SeedFeedbackCreate,
    SeedFeedbackRead,
    SimilarityIn,
)

__all__ = [
    "CatalogueReloadResponse",
    "ChatProcessRequest",
    "ChatProcessResponse",
    "DiagnosticsRequest",
    "DiagnosticsResponse",
    "SeedDeactivateResponse",
    "SeedFeedbackCreate",
    "SeedFeedbackRead",
    "SimilarityIn",
    "StrictnessRead",
    "StrictnessUpdate",
]
