"""Admin schemas: strictness, catalogue reload, seed deactivation."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from app.services.nesy.types import StrictnessConfig, StrictnessLevel


class StrictnessUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: StrictnessLevel


class StrictnessRead(BaseModel):
    level: StrictnessLevel
    risk_alert: float
    overall_risk_high: float
    overall_risk_moderate: float
    protective_factors_min: int
    intervention_trigger: float
    risk_multiplier: float
    protective_multiplier: float

    @classmethod
    def from_config(cls, config: StrictnessConfig) -> StrictnessRead:
        t = config.thresholds
        return cls(
            level=config.level,
            risk_alert=t.risk_alert,
            overall_risk_high=t.overall_risk_high,
            overall_risk_moderate=t.overall_risk_moderate,
            protective_factors_min=t.protective_factors_min,
            intervention_trigger=t.intervention_trigger,
            risk_multiplier=config.weights.risk_multiplier,
            protective_multiplier=config.weights.protective_multiplier,
        )


class CatalogueReloadResponse(BaseModel):
    rubric_version: str
    rubric_count: int
    seed_count: int


class SeedDeactivateResponse(BaseModel):
    seed_id: str
    is_active: bool
