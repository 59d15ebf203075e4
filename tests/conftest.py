"""Pytest configuration and fixtures for marktrust tests."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from marktrust.audit.sink import InMemoryAuditSink
from marktrust.models.entity import (
    Business,
    EntityDocument,
    EntityType,
    IdentityStatus,
    IdentityVerification,
    Project,
)
from marktrust.persistence.repositories import (
    clear_all_in_memory_stores,
    seed_document_in_memory,
    seed_entity_in_memory,
    seed_identity_in_memory,
)
from marktrust.scoring.config import (
    ENV_BASE_SCORE,
    ENV_HISTORY_LIMIT,
    ENV_MAX_SCORE,
    ENV_MIN_SCORE,
    ScoringConfig,
)
from marktrust.services.trust_score.service import TrustScoreService


@pytest.fixture(autouse=True)
def clear_stores() -> None:
    """Clear in-memory stores before each test."""
    clear_all_in_memory_stores()


@pytest.fixture(autouse=True)
def default_scoring_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Run every test against the default points table and bounds.

    Tests that exercise environment overrides set the variables themselves.
    """
    for env_var in (ENV_BASE_SCORE, ENV_MIN_SCORE, ENV_MAX_SCORE, ENV_HISTORY_LIMIT):
        monkeypatch.delenv(env_var, raising=False)


@pytest.fixture
def audit_sink() -> InMemoryAuditSink:
    """Provide in-memory audit sink."""
    return InMemoryAuditSink()


@pytest.fixture
def service(audit_sink: InMemoryAuditSink) -> TrustScoreService:
    """TrustScoreService over in-memory stores with the default config."""
    return TrustScoreService(audit_sink=audit_sink, config=ScoringConfig())


@pytest.fixture
def make_project() -> Callable[..., Project]:
    """Seed a project; keyword arguments override attributes."""

    def _make(project_id: str = "proj-1", user_id: str = "user-1", **attrs: Any) -> Project:
        project = Project(id=project_id, user_id=user_id, **attrs)
        seed_entity_in_memory(project)
        return project

    return _make


@pytest.fixture
def make_business() -> Callable[..., Business]:
    """Seed a business; keyword arguments override attributes."""

    def _make(business_id: str = "biz-1", user_id: str = "user-1", **attrs: Any) -> Business:
        business = Business(id=business_id, user_id=user_id, **attrs)
        seed_entity_in_memory(business)
        return business

    return _make


@pytest.fixture
def verify_identity() -> Callable[[str], IdentityVerification]:
    """Seed a VERIFIED identity record for a user."""

    def _verify(user_id: str) -> IdentityVerification:
        identity = IdentityVerification(user_id=user_id, status=IdentityStatus.VERIFIED)
        seed_identity_in_memory(identity)
        return identity

    return _verify


@pytest.fixture
def attach_document() -> Callable[..., EntityDocument]:
    """Seed a document on an entity."""
    counter = iter(range(1, 1000))

    def _attach(
        entity_type: EntityType,
        entity_id: str,
        doc_type: str,
        is_verified: bool = False,
    ) -> EntityDocument:
        document = EntityDocument(
            document_id=f"doc-{next(counter)}",
            entity_type=entity_type,
            entity_id=entity_id,
            doc_type=doc_type,
            is_verified=is_verified,
        )
        seed_document_in_memory(document)
        return document

    return _attach
