"""
Data Schemas for DETECPORC

Documents are stored as JSON arrays on disk and validated with the Pydantic
models below:
- point: a published point of sale (points.json)
- suggestion: a publicly proposed point awaiting moderation (pending.json)
- admin account: configured administrator identity, keyed by username
- admin session: server-tracked proof of a successful administrator login

Documents written by earlier deployments use French keys (nom, adresse,
telephone, horaires, commentaire). They are accepted on input; English keys are
always written back.
"""

import math
from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _alias(name: str, legacy: str) -> Any:
    return Field(default="", validation_alias=AliasChoices(name, legacy))


class PointDraft(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str = Field(..., min_length=1, validation_alias=AliasChoices("name", "nom"))
    lat: float
    lng: float
    address: str = _alias("address", "adresse")
    phone: str = _alias("phone", "telephone")
    hours: str = _alias("hours", "horaires")
    comment: str = _alias("comment", "commentaire")

    @field_validator("lat", "lng", mode="before")
    @classmethod
    def finite_number(cls, value: Any) -> Any:
        # numeric strings and booleans are not coordinates
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("coordinate must be a number")
        try:
            finite = math.isfinite(float(value))
        except OverflowError:
            finite = False
        if not finite:
            raise ValueError("coordinate must be finite")
        return value

    @field_validator("address", "phone", "hours", "comment", mode="before")
    @classmethod
    def empty_text(cls, value: Any) -> Any:
        return "" if value is None else value


class Point(PointDraft):
    id: int


class Suggestion(PointDraft):
    """A pending proposal; `id` is local to the moderation queue."""

    id: int


class RankedPoint(Point):
    distance: Optional[float] = Field(None, description="Meters from the caller, None when unknown")


class AdminAccount(BaseModel):
    username: str = Field(..., min_length=1)
    salt: str = ""
    password_hash: str = Field(..., description="Hex scrypt digest or passlib $scrypt$ hash")


class AdminSession(BaseModel):
    sid: str
    username: str
    is_admin: bool = True
    issued_at: datetime
    expires_at: datetime
