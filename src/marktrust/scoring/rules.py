"""Rule tables for crypto projects and businesses.

Each rule is a named, bounded, pure function over an entity and its
evaluation context. Rules must return a value in [0, max_points]; this is
not enforced at runtime and only the final total is clamped.

Table order is stable and determines the display order of factors.
Tiered bonuses (liquidity lock, vesting, KYB) are split into a base rule
plus incremental rules so that reaching the top tier awards exactly the
top-tier total.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from marktrust.models.entity import Business, EntityType, KYBLevel, Project
from marktrust.scoring.config import BusinessPoints, ProjectPoints, ScoringConfig
from marktrust.scoring.context import EvaluationContext


@dataclass(frozen=True)
class ScoreRule:
    """A single scoring rule."""

    name: str
    max_points: int
    description: str
    evaluate: Callable[[Any, EvaluationContext], int]


def _completeness(fields: list[bool], max_points: int) -> int:
    """floor(filled / total * max_points)."""
    return math.floor(sum(fields) / len(fields) * max_points)


def _at_least(value: int | None, threshold: int) -> bool:
    return value is not None and value >= threshold


_KYB_RANK = {
    KYBLevel.NONE: 0,
    KYBLevel.BASIC: 1,
    KYBLevel.STANDARD: 2,
    KYBLevel.ENHANCED: 3,
}


def _kyb_at_least(business: Business, level: KYBLevel) -> bool:
    return _KYB_RANK[business.kyb_level] >= _KYB_RANK[level]


def build_project_rules(points: ProjectPoints) -> tuple[ScoreRule, ...]:
    """Build the ordered project rule table for a points configuration."""
    liquidity_extra = points.liquidity_lock_12_months - points.liquidity_lock_6_months
    vesting_extra = points.vesting_24_months - points.vesting_12_months

    def identity(project: Project, ctx: EvaluationContext) -> int:
        return points.identity_verified if ctx.identity_verified else 0

    def liquidity_6(project: Project, ctx: EvaluationContext) -> int:
        return points.liquidity_lock_6_months if _at_least(project.liquidity_lock_months, 6) else 0

    def liquidity_12(project: Project, ctx: EvaluationContext) -> int:
        return liquidity_extra if _at_least(project.liquidity_lock_months, 12) else 0

    def vesting_12(project: Project, ctx: EvaluationContext) -> int:
        return points.vesting_12_months if _at_least(project.team_vesting_months, 12) else 0

    def vesting_24(project: Project, ctx: EvaluationContext) -> int:
        return vesting_extra if _at_least(project.team_vesting_months, 24) else 0

    def profile(project: Project, ctx: EvaluationContext) -> int:
        required = [
            bool(project.name),
            bool(project.description),
            bool(project.category),
            bool(project.total_supply),
            project.team_allocation_percent is not None,
        ]
        return _completeness(required, points.profile_complete)

    def audit(project: Project, ctx: EvaluationContext) -> int:
        if project.audit_provider and project.audit_report_url:
            return points.external_audit
        return 0

    def whitepaper_socials(project: Project, ctx: EvaluationContext) -> int:
        awarded = 0
        if project.whitepaper:
            awarded += 2
        if project.twitter or project.discord or project.telegram:
            awarded += 3
        return min(awarded, points.whitepaper_socials)

    def contract(project: Project, ctx: EvaluationContext) -> int:
        return points.contract_verified if project.contract_verified else 0

    return (
        ScoreRule(
            name="Identity Verification",
            max_points=points.identity_verified,
            description="Team lead has completed private identity verification",
            evaluate=identity,
        ),
        ScoreRule(
            name="Liquidity Lock (6+ months)",
            max_points=points.liquidity_lock_6_months,
            description="Initial liquidity is locked for at least 6 months",
            evaluate=liquidity_6,
        ),
        ScoreRule(
            name="Liquidity Lock (12+ months)",
            max_points=liquidity_extra,
            description="Initial liquidity is locked for at least 12 months (additional bonus)",
            evaluate=liquidity_12,
        ),
        ScoreRule(
            name="Team Vesting (12+ months)",
            max_points=points.vesting_12_months,
            description="Team tokens have at least 12 months vesting",
            evaluate=vesting_12,
        ),
        ScoreRule(
            name="Team Vesting (24+ months)",
            max_points=vesting_extra,
            description="Team tokens have at least 24 months vesting (additional bonus)",
            evaluate=vesting_24,
        ),
        ScoreRule(
            name="Complete Profile",
            max_points=points.profile_complete,
            description="Project has a complete profile with all essential information",
            evaluate=profile,
        ),
        ScoreRule(
            name="External Audit",
            max_points=points.external_audit,
            description="Smart contract has been audited by a third-party",
            evaluate=audit,
        ),
        ScoreRule(
            name="Whitepaper & Socials",
            max_points=points.whitepaper_socials,
            description="Project has whitepaper and active social media presence",
            evaluate=whitepaper_socials,
        ),
        ScoreRule(
            name="Contract Verified",
            max_points=points.contract_verified,
            description="Smart contract source code is verified on-chain",
            evaluate=contract,
        ),
    )


def build_business_rules(points: BusinessPoints) -> tuple[ScoreRule, ...]:
    """Build the ordered business rule table for a points configuration."""
    standard_extra = points.kyb_standard - points.kyb_basic
    enhanced_extra = points.kyb_enhanced - points.kyb_standard

    def kyb_basic(business: Business, ctx: EvaluationContext) -> int:
        return points.kyb_basic if _kyb_at_least(business, KYBLevel.BASIC) else 0

    def kyb_standard(business: Business, ctx: EvaluationContext) -> int:
        return standard_extra if _kyb_at_least(business, KYBLevel.STANDARD) else 0

    def kyb_enhanced(business: Business, ctx: EvaluationContext) -> int:
        return enhanced_extra if _kyb_at_least(business, KYBLevel.ENHANCED) else 0

    def financial_docs(business: Business, ctx: EvaluationContext) -> int:
        return points.financial_docs if ctx.has_financial_docs else 0

    def registration(business: Business, ctx: EvaluationContext) -> int:
        return points.ein_registration if business.ein or business.registration_number else 0

    def profile(business: Business, ctx: EvaluationContext) -> int:
        required = [
            bool(business.legal_name),
            bool(business.legal_entity_type),
            bool(business.jurisdiction),
            bool(business.description),
            bool(business.industry),
            bool(business.business_email),
            bool(business.website),
        ]
        return _completeness(required, points.profile_complete)

    def accounting_review(business: Business, ctx: EvaluationContext) -> int:
        return points.external_accounting_review if ctx.has_audit_docs else 0

    return (
        ScoreRule(
            name="KYB Basic",
            max_points=points.kyb_basic,
            description="Business has completed basic KYB verification",
            evaluate=kyb_basic,
        ),
        ScoreRule(
            name="KYB Standard",
            max_points=standard_extra,
            description="Business has completed standard KYB verification (additional)",
            evaluate=kyb_standard,
        ),
        ScoreRule(
            name="KYB Enhanced",
            max_points=enhanced_extra,
            description="Business has completed enhanced KYB verification (additional)",
            evaluate=kyb_enhanced,
        ),
        ScoreRule(
            name="Financial Documents",
            max_points=points.financial_docs,
            description="Business has uploaded financial documents (P&L, balance sheet)",
            evaluate=financial_docs,
        ),
        ScoreRule(
            name="EIN / Registration",
            max_points=points.ein_registration,
            description="Business has valid EIN or registration number on file",
            evaluate=registration,
        ),
        ScoreRule(
            name="Complete Profile",
            max_points=points.profile_complete,
            description="Business has a complete profile with all essential information",
            evaluate=profile,
        ),
        ScoreRule(
            name="External Accounting Review",
            max_points=points.external_accounting_review,
            description="Financial documents have been reviewed by external accountant",
            evaluate=accounting_review,
        ),
    )


def build_rule_tables(config: ScoringConfig) -> dict[EntityType, tuple[ScoreRule, ...]]:
    """Build both rule tables keyed by entity kind."""
    return {
        EntityType.PROJECT: build_project_rules(config.project),
        EntityType.BUSINESS: build_business_rules(config.business),
    }
