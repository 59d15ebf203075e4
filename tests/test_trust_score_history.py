"""Paginated ledger history tests."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

from marktrust.audit.sink import InMemoryAuditSink
from marktrust.models.entity import EntityType, Project
from marktrust.models.ledger_event import LedgerEvent, LedgerEventType
from marktrust.persistence.repositories import seed_ledger_event_in_memory
from marktrust.services.trust_score.service import TrustScoreService


def _record_bonuses(service: TrustScoreService, count: int) -> None:
    for i in range(count):
        service.record_event(
            "proj-1",
            LedgerEventType.BONUS_APPLIED,
            EntityType.PROJECT,
            1,
            f"bonus {i}",
            triggered_by="system",
        )


class TestGetHistory:
    """get_history pages through the ledger newest first."""

    def test_pages_newest_first(
        self, service: TrustScoreService, make_project: Callable[..., Project]
    ) -> None:
        make_project()
        _record_bonuses(service, 5)

        first = service.get_history("proj-1", EntityType.PROJECT, page=1, limit=2)
        last = service.get_history("proj-1", EntityType.PROJECT, page=3, limit=2)

        assert [e.reason for e in first.items] == ["bonus 4", "bonus 3"]
        assert [e.reason for e in last.items] == ["bonus 0"]
        assert first.total == 5
        assert first.total_pages == 3

    def test_empty_history(
        self, service: TrustScoreService, make_project: Callable[..., Project]
    ) -> None:
        make_project()

        page = service.get_history("proj-1", EntityType.PROJECT)

        assert page.items == []
        assert page.total == 0
        assert page.total_pages == 0
        assert page.limit == 20

    def test_page_and_limit_are_clamped(
        self, service: TrustScoreService, make_project: Callable[..., Project]
    ) -> None:
        make_project()
        _record_bonuses(service, 2)

        page = service.get_history("proj-1", EntityType.PROJECT, page=0, limit=1000)

        assert page.page == 1
        assert page.limit == 100
        assert len(page.items) == 2

    def test_history_is_per_entity(
        self, service: TrustScoreService, make_project: Callable[..., Project]
    ) -> None:
        make_project()
        make_project("proj-2")
        _record_bonuses(service, 3)

        page = service.get_history("proj-2", EntityType.PROJECT)

        assert page.total == 0

    def test_reading_history_does_not_recompute(
        self,
        service: TrustScoreService,
        make_project: Callable[..., Project],
        audit_sink: InMemoryAuditSink,
    ) -> None:
        make_project()

        service.get_history("proj-1", EntityType.PROJECT)

        assert audit_sink.events == []


class TestSameTimestampOrdering:
    """Events sharing created_at are ordered by insertion sequence, newest first."""

    def _seed_tied_events(self) -> None:
        tied_at = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)
        for seq in (1, 2, 3):
            seed_ledger_event_in_memory(
                LedgerEvent(
                    event_id=f"evt-{seq}",
                    seq=seq,
                    entity_type=EntityType.PROJECT,
                    entity_id="proj-1",
                    event_type=LedgerEventType.PENALTY_APPLIED,
                    points=-1,
                    reason=f"r{seq}",
                    created_at=tied_at,
                )
            )

    def test_score_history_breaks_ties_by_seq(
        self, service: TrustScoreService, make_project: Callable[..., Project]
    ) -> None:
        make_project()
        self._seed_tied_events()

        result = service.get_score("proj-1", EntityType.PROJECT)

        assert [h.reason for h in result.history] == ["r3", "r2", "r1"]
        assert result.current_score == 47

    def test_get_history_breaks_ties_by_seq(
        self, service: TrustScoreService, make_project: Callable[..., Project]
    ) -> None:
        make_project()
        self._seed_tied_events()

        page = service.get_history("proj-1", EntityType.PROJECT)

        assert [e.seq for e in page.items] == [3, 2, 1]
