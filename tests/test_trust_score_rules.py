"""Rule table tests for projects and businesses.

Rules are evaluated directly against entities and hand-built contexts,
without going through the engine.
"""

from __future__ import annotations

import pytest

from marktrust.models.entity import (
    Business,
    IdentityStatus,
    IdentityVerification,
    KYBLevel,
    Project,
)
from marktrust.scoring.config import BusinessPoints, ProjectPoints
from marktrust.scoring.context import EvaluationContext
from marktrust.scoring.rules import ScoreRule, build_business_rules, build_project_rules

VERIFIED = EvaluationContext(
    identity=IdentityVerification(user_id="user-1", status=IdentityStatus.VERIFIED)
)
EMPTY = EvaluationContext()


def _points(
    rules: tuple[ScoreRule, ...], entity: Project | Business, ctx: EvaluationContext
) -> dict[str, int]:
    return {rule.name: rule.evaluate(entity, ctx) for rule in rules}


@pytest.fixture
def project_rules() -> tuple[ScoreRule, ...]:
    return build_project_rules(ProjectPoints())


@pytest.fixture
def business_rules() -> tuple[ScoreRule, ...]:
    return build_business_rules(BusinessPoints())


class TestProjectRuleTable:
    """Project rules: order, maxima and individual awards."""

    def test_rule_order_and_maxima(self, project_rules: tuple[ScoreRule, ...]) -> None:
        assert [(r.name, r.max_points) for r in project_rules] == [
            ("Identity Verification", 20),
            ("Liquidity Lock (6+ months)", 15),
            ("Liquidity Lock (12+ months)", 5),
            ("Team Vesting (12+ months)", 10),
            ("Team Vesting (24+ months)", 5),
            ("Complete Profile", 10),
            ("External Audit", 10),
            ("Whitepaper & Socials", 5),
            ("Contract Verified", 5),
        ]

    def test_empty_project_earns_nothing(self, project_rules: tuple[ScoreRule, ...]) -> None:
        project = Project(id="p", user_id="user-1")

        assert sum(_points(project_rules, project, EMPTY).values()) == 0

    def test_identity_requires_verified_status(self, project_rules: tuple[ScoreRule, ...]) -> None:
        project = Project(id="p", user_id="user-1")
        pending = EvaluationContext(
            identity=IdentityVerification(user_id="user-1", status=IdentityStatus.PENDING)
        )

        assert _points(project_rules, project, VERIFIED)["Identity Verification"] == 20
        assert _points(project_rules, project, pending)["Identity Verification"] == 0

    @pytest.mark.parametrize(
        ("months", "expected_total"),
        [(None, 0), (5, 0), (6, 15), (11, 15), (12, 20), (36, 20)],
    )
    def test_liquidity_lock_is_not_double_counted(
        self,
        project_rules: tuple[ScoreRule, ...],
        months: int | None,
        expected_total: int,
    ) -> None:
        """A 12-month lock earns the 12-month total, not 6-month + 12-month totals."""
        project = Project(id="p", user_id="user-1", liquidity_lock_months=months)
        points = _points(project_rules, project, EMPTY)

        total = points["Liquidity Lock (6+ months)"] + points["Liquidity Lock (12+ months)"]
        assert total == expected_total

    @pytest.mark.parametrize(
        ("months", "expected_total"),
        [(None, 0), (11, 0), (12, 10), (23, 10), (24, 15)],
    )
    def test_vesting_tiers(
        self,
        project_rules: tuple[ScoreRule, ...],
        months: int | None,
        expected_total: int,
    ) -> None:
        project = Project(id="p", user_id="user-1", team_vesting_months=months)
        points = _points(project_rules, project, EMPTY)

        total = points["Team Vesting (12+ months)"] + points["Team Vesting (24+ months)"]
        assert total == expected_total

    def test_profile_completeness_is_floored(self, project_rules: tuple[ScoreRule, ...]) -> None:
        """3 of 5 fields filled gives floor(3/5 * 10) = 6."""
        project = Project(
            id="p", user_id="user-1", name="Token", description="A token", category="DeFi"
        )

        assert _points(project_rules, project, EMPTY)["Complete Profile"] == 6

    def test_zero_team_allocation_counts_as_filled(
        self, project_rules: tuple[ScoreRule, ...]
    ) -> None:
        project = Project(
            id="p",
            user_id="user-1",
            name="Token",
            description="A token",
            category="DeFi",
            total_supply="1000000",
            team_allocation_percent=0,
        )

        assert _points(project_rules, project, EMPTY)["Complete Profile"] == 10

    def test_audit_needs_provider_and_report(self, project_rules: tuple[ScoreRule, ...]) -> None:
        provider_only = Project(id="p", user_id="user-1", audit_provider="CertiK")
        both = Project(
            id="p",
            user_id="user-1",
            audit_provider="CertiK",
            audit_report_url="https://example.com/audit.pdf",
        )

        assert _points(project_rules, provider_only, EMPTY)["External Audit"] == 0
        assert _points(project_rules, both, EMPTY)["External Audit"] == 10

    @pytest.mark.parametrize(
        ("attrs", "expected"),
        [
            ({}, 0),
            ({"whitepaper": "https://example.com/wp.pdf"}, 2),
            ({"discord": "https://discord.gg/x"}, 3),
            ({"twitter": "@x", "telegram": "t.me/x"}, 3),
            ({"whitepaper": "https://example.com/wp.pdf", "twitter": "@x"}, 5),
        ],
    )
    def test_whitepaper_and_socials(
        self,
        project_rules: tuple[ScoreRule, ...],
        attrs: dict[str, str],
        expected: int,
    ) -> None:
        project = Project(id="p", user_id="user-1", **attrs)

        assert _points(project_rules, project, EMPTY)["Whitepaper & Socials"] == expected

    def test_contract_verified(self, project_rules: tuple[ScoreRule, ...]) -> None:
        project = Project(id="p", user_id="user-1", contract_verified=True)

        assert _points(project_rules, project, EMPTY)["Contract Verified"] == 5

    def test_rules_stay_within_bounds(self, project_rules: tuple[ScoreRule, ...]) -> None:
        """A maximal project hits every rule's ceiling exactly."""
        project = Project(
            id="p",
            user_id="user-1",
            name="Token",
            description="A token",
            category="DeFi",
            total_supply="1000000",
            team_allocation_percent=15,
            team_vesting_months=36,
            liquidity_lock_months=24,
            audit_provider="CertiK",
            audit_report_url="https://example.com/audit.pdf",
            whitepaper="https://example.com/wp.pdf",
            twitter="@token",
            contract_verified=True,
        )

        for rule in project_rules:
            assert rule.evaluate(project, VERIFIED) == rule.max_points


class TestBusinessRuleTable:
    """Business rules: KYB tiers, documents, registration and profile."""

    def test_rule_order_and_maxima(self, business_rules: tuple[ScoreRule, ...]) -> None:
        assert [(r.name, r.max_points) for r in business_rules] == [
            ("KYB Basic", 10),
            ("KYB Standard", 5),
            ("KYB Enhanced", 5),
            ("Financial Documents", 15),
            ("EIN / Registration", 10),
            ("Complete Profile", 10),
            ("External Accounting Review", 10),
        ]

    @pytest.mark.parametrize(
        ("level", "expected_total"),
        [
            (KYBLevel.NONE, 0),
            (KYBLevel.BASIC, 10),
            (KYBLevel.STANDARD, 15),
            (KYBLevel.ENHANCED, 20),
        ],
    )
    def test_kyb_levels_are_cumulative(
        self,
        business_rules: tuple[ScoreRule, ...],
        level: KYBLevel,
        expected_total: int,
    ) -> None:
        business = Business(id="b", user_id="user-1", kyb_level=level)
        points = _points(business_rules, business, EMPTY)

        total = points["KYB Basic"] + points["KYB Standard"] + points["KYB Enhanced"]
        assert total == expected_total

    def test_documents_come_from_context(self, business_rules: tuple[ScoreRule, ...]) -> None:
        business = Business(id="b", user_id="user-1")
        ctx = EvaluationContext(has_financial_docs=True, has_audit_docs=True)
        points = _points(business_rules, business, ctx)

        assert points["Financial Documents"] == 15
        assert points["External Accounting Review"] == 10

    def test_registration_accepts_ein_or_number(
        self, business_rules: tuple[ScoreRule, ...]
    ) -> None:
        with_ein = Business(id="b", user_id="user-1", ein="12-3456789")
        with_number = Business(id="b", user_id="user-1", registration_number="C1234")

        assert _points(business_rules, with_ein, EMPTY)["EIN / Registration"] == 10
        assert _points(business_rules, with_number, EMPTY)["EIN / Registration"] == 10

    def test_profile_completeness_is_floored(
        self, business_rules: tuple[ScoreRule, ...]
    ) -> None:
        """4 of 7 fields filled gives floor(4/7 * 10) = 5."""
        business = Business(
            id="b",
            user_id="user-1",
            legal_name="Acme LLC",
            legal_entity_type="LLC",
            jurisdiction="Delaware",
            industry="Retail",
        )

        assert _points(business_rules, business, EMPTY)["Complete Profile"] == 5
