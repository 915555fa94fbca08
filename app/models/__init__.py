"""SQLAlchemy models."""

from app.models.app_settings import AppSettings
from app.models.decision_log import DecisionLog
from app.models.fusion_weight import FusionWeight
from app.models.seed import Seed
from app.models.seed_feedback import SeedFeedback

__all__ = [
    "AppSettings",
    "DecisionLog",
    "FusionWeight",
    "Seed",
    "SeedFeedback",
]
