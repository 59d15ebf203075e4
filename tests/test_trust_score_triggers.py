"""Trigger dispatcher tests.

Each named trigger maps a domain event to a ledger event using the points
table; zero-value triggers are no-ops.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from marktrust.audit.events import ADMIN_ADJUSTMENT, SCORE_CALCULATED
from marktrust.audit.sink import InMemoryAuditSink
from marktrust.models.entity import Business, EntityType, KYBLevel, Project
from marktrust.models.ledger_event import LedgerEventType
from marktrust.models.score import Tier
from marktrust.persistence.repositories.ledger import InMemoryLedgerRepository
from marktrust.services.trust_score.service import AdminAdjustmentInput, TrustScoreService


def _events(entity_type: EntityType, entity_id: str) -> list[Any]:
    return InMemoryLedgerRepository().recent(entity_type, entity_id, 100)


class TestIdentityVerifiedFanOut:
    """on_identity_verified credits every entity the user owns."""

    def test_two_projects_and_one_business(
        self,
        service: TrustScoreService,
        audit_sink: InMemoryAuditSink,
        make_project: Callable[..., Project],
        make_business: Callable[..., Business],
        verify_identity: Callable[[str], Any],
    ) -> None:
        make_project("proj-a", user_id="founder")
        make_project("proj-b", user_id="founder")
        make_business("biz-a", user_id="founder")
        make_project("proj-other", user_id="someone-else")
        verify_identity("founder")

        results = service.on_identity_verified("founder")

        assert len(results) == 3
        assert len(audit_sink.events_of_type(SCORE_CALCULATED)) == 3
        for entity_type, entity_id in (
            (EntityType.PROJECT, "proj-a"),
            (EntityType.PROJECT, "proj-b"),
            (EntityType.BUSINESS, "biz-a"),
        ):
            events = _events(entity_type, entity_id)
            assert len(events) == 1
            assert events[0].event_type == LedgerEventType.IDENTITY_VERIFIED
            assert events[0].triggered_by == "system"
        assert _events(EntityType.PROJECT, "proj-other") == []

    def test_points_and_reasons_per_kind(
        self,
        service: TrustScoreService,
        make_project: Callable[..., Project],
        make_business: Callable[..., Business],
        verify_identity: Callable[[str], Any],
    ) -> None:
        make_project("proj-a", user_id="founder")
        make_business("biz-a", user_id="founder")
        verify_identity("founder")

        results = {r.entity_id: r for r in service.on_identity_verified("founder")}

        project_event = _events(EntityType.PROJECT, "proj-a")[0]
        business_event = _events(EntityType.BUSINESS, "biz-a")[0]
        assert project_event.points == 20
        assert project_event.reason == "Team lead completed identity verification"
        assert business_event.points == 10
        assert business_event.reason == "Business owner completed identity verification"

        # Projects read identity through a rule; businesses have no identity rule.
        assert results["proj-a"].current_score == 70
        assert results["proj-a"].tier == Tier.GOOD
        assert results["biz-a"].current_score == 50

    def test_user_without_entities(self, service: TrustScoreService) -> None:
        assert service.on_identity_verified("nobody") == []


class TestAttributeTriggers:
    """Liquidity, vesting, KYB and document triggers."""

    @pytest.mark.parametrize(("months", "points"), [(6, 15), (11, 15), (12, 20), (48, 20)])
    def test_liquidity_points(
        self,
        service: TrustScoreService,
        make_project: Callable[..., Project],
        months: int,
        points: int,
    ) -> None:
        make_project()

        result = service.on_liquidity_locked("proj-1", months)

        assert result is not None
        event = _events(EntityType.PROJECT, "proj-1")[0]
        assert event.event_type == LedgerEventType.LIQUIDITY_LOCKED
        assert event.points == points
        assert event.reason == f"Liquidity locked for {months} months"

    @pytest.mark.parametrize(("months", "points"), [(12, 10), (23, 10), (24, 15)])
    def test_vesting_points(
        self,
        service: TrustScoreService,
        make_project: Callable[..., Project],
        months: int,
        points: int,
    ) -> None:
        make_project()

        service.on_vesting_configured("proj-1", months)

        event = _events(EntityType.PROJECT, "proj-1")[0]
        assert event.event_type == LedgerEventType.VESTING_CONFIGURED
        assert event.points == points

    @pytest.mark.parametrize(
        ("level", "points"),
        [(KYBLevel.BASIC, 10), (KYBLevel.STANDARD, 15), (KYBLevel.ENHANCED, 20), ("ENHANCED", 20)],
    )
    def test_kyb_points(
        self,
        service: TrustScoreService,
        make_business: Callable[..., Business],
        level: KYBLevel | str,
        points: int,
    ) -> None:
        make_business()

        service.on_kyb_verified("biz-1", level)

        event = _events(EntityType.BUSINESS, "biz-1")[0]
        assert event.event_type == LedgerEventType.KYB_VERIFIED
        assert event.points == points
        assert event.reason == f"KYB {level} verification completed"

    def test_trigger_score_comes_from_attributes(
        self, service: TrustScoreService, make_business: Callable[..., Business]
    ) -> None:
        """The KYB event itself is not summed; the kyb_level attribute is."""
        make_business(kyb_level=KYBLevel.ENHANCED)

        result = service.on_kyb_verified("biz-1", KYBLevel.ENHANCED)

        assert result is not None
        assert result.current_score == 70

    def test_financial_documents_on_business(
        self, service: TrustScoreService, make_business: Callable[..., Business]
    ) -> None:
        make_business()

        service.on_documents_uploaded("biz-1", EntityType.BUSINESS, "financial")

        event = _events(EntityType.BUSINESS, "biz-1")[0]
        assert event.event_type == LedgerEventType.DOCS_UPLOADED
        assert event.points == 15
        assert event.reason == "Financial documents uploaded"

    def test_audit_report_on_project(
        self, service: TrustScoreService, make_project: Callable[..., Project]
    ) -> None:
        make_project()

        service.on_documents_uploaded("proj-1", EntityType.PROJECT, "audit")

        event = _events(EntityType.PROJECT, "proj-1")[0]
        assert event.points == 10
        assert event.reason == "Audit report uploaded"


class TestZeroValueTriggers:
    """Triggers worth nothing write no event and do not recompute."""

    @pytest.mark.parametrize(
        "invoke",
        [
            lambda s: s.on_liquidity_locked("proj-1", 5),
            lambda s: s.on_vesting_configured("proj-1", 11),
            lambda s: s.on_documents_uploaded("proj-1", EntityType.PROJECT, "financial"),
            lambda s: s.on_documents_uploaded("proj-1", EntityType.PROJECT, "pitch_deck"),
        ],
    )
    def test_project_no_ops(
        self,
        service: TrustScoreService,
        audit_sink: InMemoryAuditSink,
        make_project: Callable[..., Project],
        invoke: Callable[[TrustScoreService], Any],
    ) -> None:
        make_project()

        assert invoke(service) is None
        assert _events(EntityType.PROJECT, "proj-1") == []
        assert audit_sink.events == []

    @pytest.mark.parametrize("level", [KYBLevel.NONE, "PLATINUM", "basic"])
    def test_unknown_kyb_level_is_no_op(
        self,
        service: TrustScoreService,
        audit_sink: InMemoryAuditSink,
        make_business: Callable[..., Business],
        level: KYBLevel | str,
    ) -> None:
        make_business()

        assert service.on_kyb_verified("biz-1", level) is None
        assert _events(EntityType.BUSINESS, "biz-1") == []
        assert audit_sink.events == []


class TestPenalties:
    """Penalty helpers record PENALTY_APPLIED with fixed magnitudes."""

    def test_missed_report(
        self, service: TrustScoreService, make_business: Callable[..., Business]
    ) -> None:
        make_business()

        result = service.apply_missed_report_penalty("biz-1", "2026-09")

        event = _events(EntityType.BUSINESS, "biz-1")[0]
        assert event.event_type == LedgerEventType.PENALTY_APPLIED
        assert event.points == -15
        assert event.reason == "Missed revenue report for 2026-09"
        assert event.triggered_by == "system"
        assert result.current_score == 35

    def test_community_report_is_triggered_by_governance(
        self, service: TrustScoreService, make_business: Callable[..., Business]
    ) -> None:
        make_business()

        service.apply_community_report_penalty("biz-1", EntityType.BUSINESS, "fake invoices")

        event = _events(EntityType.BUSINESS, "biz-1")[0]
        assert event.points == -15
        assert event.reason == "Community report verified: fake invoices"
        assert event.triggered_by == "governance"

    @pytest.mark.parametrize(
        ("invoke", "entity_type", "entity_id", "points"),
        [
            (
                lambda s: s.apply_contract_flag_penalty("proj-1", "mint"),
                EntityType.PROJECT,
                "proj-1",
                -10,
            ),
            (lambda s: s.apply_kyb_expired_penalty("biz-1"), EntityType.BUSINESS, "biz-1", -25),
            (
                lambda s: s.apply_large_team_sale_penalty("proj-1", 12.5),
                EntityType.PROJECT,
                "proj-1",
                -20,
            ),
        ],
    )
    def test_other_penalties(
        self,
        service: TrustScoreService,
        make_project: Callable[..., Project],
        make_business: Callable[..., Business],
        invoke: Callable[[TrustScoreService], Any],
        entity_type: EntityType,
        entity_id: str,
        points: int,
    ) -> None:
        make_project()
        make_business()

        result = invoke(service)

        event = _events(entity_type, entity_id)[0]
        assert event.event_type == LedgerEventType.PENALTY_APPLIED
        assert event.points == points
        assert event.triggered_by == "system"
        assert result.current_score == 50 + points


class TestAdminAdjust:
    """admin_adjust records MANUAL_ADJUSTMENT plus an ADMIN_ADJUSTMENT audit record."""

    def test_negative_adjustment_is_durable(
        self,
        service: TrustScoreService,
        audit_sink: InMemoryAuditSink,
        make_project: Callable[..., Project],
    ) -> None:
        make_project()

        result = service.admin_adjust(
            AdminAdjustmentInput(
                entity_id="proj-1",
                entity_type=EntityType.PROJECT,
                points=-10,
                reason="Misleading marketing",
            ),
            admin_id="admin-1",
        )

        assert result.current_score == 40
        assert service.get_score("proj-1", EntityType.PROJECT).current_score == 40

        event = _events(EntityType.PROJECT, "proj-1")[0]
        assert event.event_type == LedgerEventType.MANUAL_ADJUSTMENT
        assert event.triggered_by == "admin-1"
        assert event.metadata == {"admin_adjustment": True}

        adjustments = audit_sink.events_of_type(ADMIN_ADJUSTMENT)
        assert len(adjustments) == 1
        assert adjustments[0]["actor"]["actor_id"] == "admin-1"
        assert adjustments[0]["payload"]["details"]["points"] == -10

    def test_positive_adjustment_evaporates(
        self, service: TrustScoreService, make_project: Callable[..., Project]
    ) -> None:
        """Positive manual adjustments are recorded but not summed, even in the returned result."""
        make_project()

        result = service.admin_adjust(
            {
                "entity_id": "proj-1",
                "entity_type": "project",
                "points": 10,
                "reason": "Goodwill",
            },
            admin_id="admin-1",
        )

        assert result.current_score == 50
        assert result.history[0].event_type == LedgerEventType.MANUAL_ADJUSTMENT
        assert result.history[0].points == 10
