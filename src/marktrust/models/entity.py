"""Scored entity models: crypto projects and businesses.

Both variants carry the engine-owned score fields (trust_score,
trust_score_updated_at). Everything else is authored by the owning user
through the surrounding CRUD layer and only read here.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_TRUST_SCORE = 50


class EntityType(StrEnum):
    """Kind of scored entity."""

    PROJECT = "project"
    BUSINESS = "business"


class KYBLevel(StrEnum):
    """Know-your-business verification level, ordered NONE < ENHANCED."""

    NONE = "NONE"
    BASIC = "BASIC"
    STANDARD = "STANDARD"
    ENHANCED = "ENHANCED"


class IdentityStatus(StrEnum):
    """Status of a user's private identity verification."""

    NOT_STARTED = "NOT_STARTED"
    PENDING = "PENDING"
    IN_REVIEW = "IN_REVIEW"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


class IdentityVerification(BaseModel):
    """A user's identity verification record as seen by the engine."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    status: IdentityStatus = IdentityStatus.NOT_STARTED
    is_accredited: bool = False
    verified_at: datetime | None = None


class EntityDocument(BaseModel):
    """Document metadata attached to a project or business."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    entity_type: EntityType
    entity_id: str
    doc_type: str = Field(..., description="Free-form type, e.g. 'audit' or 'financial'")
    is_verified: bool = False


class BusinessFounder(BaseModel):
    """Founder listed on a business raise."""

    model_config = ConfigDict(frozen=True)

    founder_id: str
    business_id: str
    name: str
    kyc_verified: bool = False


class Project(BaseModel):
    """Crypto token launch project."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["project"] = "project"
    id: str
    user_id: str
    name: str | None = None
    symbol: str | None = None
    description: str | None = None
    category: str | None = None
    website: str | None = None
    whitepaper: str | None = None
    twitter: str | None = None
    discord: str | None = None
    telegram: str | None = None
    github: str | None = None
    total_supply: str | None = None
    team_allocation_percent: float | None = None
    team_vesting_months: int | None = None
    team_cliff_months: int | None = None
    liquidity_lock_months: int | None = None
    audit_provider: str | None = None
    audit_report_url: str | None = None
    contract_address: str | None = None
    contract_verified: bool = False
    status: str = "DRAFT"
    trust_score: int = Field(default=DEFAULT_TRUST_SCORE, ge=0, le=100)
    trust_score_updated_at: datetime | None = None


class Business(BaseModel):
    """Tokenized business raise."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["business"] = "business"
    id: str
    user_id: str
    legal_name: str | None = None
    dba: str | None = None
    legal_entity_type: str | None = None
    jurisdiction: str | None = None
    ein: str | None = None
    registration_number: str | None = None
    business_email: str | None = None
    website: str | None = None
    description: str | None = None
    industry: str | None = None
    kyb_level: KYBLevel = KYBLevel.NONE
    status: str = "DRAFT"
    trust_score: int = Field(default=DEFAULT_TRUST_SCORE, ge=0, le=100)
    trust_score_updated_at: datetime | None = None


ScoredEntity = Annotated[Project | Business, Field(discriminator="kind")]
