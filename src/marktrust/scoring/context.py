"""Evaluation context: derived facts about an entity used by rules.

The context is a read-only snapshot assembled from related records
(owner identity, documents, founders). It is rebuilt on every
recomputation and never cached.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from marktrust.models.entity import (
    Business,
    EntityType,
    IdentityStatus,
    IdentityVerification,
    Project,
)

if TYPE_CHECKING:
    from marktrust.persistence.repositories.documents import DocumentsRepo
    from marktrust.persistence.repositories.founders import FoundersRepo
    from marktrust.persistence.repositories.identity import IdentityRepo

logger = logging.getLogger(__name__)

AUDIT_DOC_TYPE = "audit"
FINANCIAL_DOC_TYPE = "financial"


@dataclass(frozen=True)
class EvaluationContext:
    """Auxiliary facts consumed by scoring rules.

    Attributes:
        identity: Owner's identity verification record, if any.
        documents_count: Number of documents attached to the entity.
        has_audit_docs: Projects: any audit document. Businesses: any
            verified audit document.
        has_financial_docs: Any financial document.
        founder_count: Businesses only; 0 for projects.
        founder_kyc_count: Businesses only; founders with KYC verified.
    """

    identity: IdentityVerification | None = None
    documents_count: int = 0
    has_audit_docs: bool = False
    has_financial_docs: bool = False
    founder_count: int = 0
    founder_kyc_count: int = 0

    @property
    def identity_verified(self) -> bool:
        return self.identity is not None and self.identity.status == IdentityStatus.VERIFIED


class EvaluationContextBuilder:
    """Assembles an EvaluationContext from the related-record stores."""

    def __init__(
        self,
        identity_repo: IdentityRepo,
        documents_repo: DocumentsRepo,
        founders_repo: FoundersRepo,
    ) -> None:
        self._identity_repo = identity_repo
        self._documents_repo = documents_repo
        self._founders_repo = founders_repo

    def build(self, entity: Project | Business) -> EvaluationContext:
        """Build a fresh context for the given entity."""
        identity = self._identity_repo.get_by_user(entity.user_id)

        match entity:
            case Project():
                documents = self._documents_repo.list_for_entity(EntityType.PROJECT, entity.id)
                context = EvaluationContext(
                    identity=identity,
                    documents_count=len(documents),
                    has_audit_docs=any(d.doc_type == AUDIT_DOC_TYPE for d in documents),
                    has_financial_docs=any(d.doc_type == FINANCIAL_DOC_TYPE for d in documents),
                )
            case Business():
                documents = self._documents_repo.list_for_entity(EntityType.BUSINESS, entity.id)
                founders = self._founders_repo.list_for_business(entity.id)
                context = EvaluationContext(
                    identity=identity,
                    documents_count=len(documents),
                    has_audit_docs=any(
                        d.doc_type == AUDIT_DOC_TYPE and d.is_verified for d in documents
                    ),
                    has_financial_docs=any(d.doc_type == FINANCIAL_DOC_TYPE for d in documents),
                    founder_count=len(founders),
                    founder_kyc_count=sum(1 for f in founders if f.kyc_verified),
                )

        logger.debug(
            "Built evaluation context for %s %s: docs=%d identity_verified=%s",
            entity.kind,
            entity.id,
            context.documents_count,
            context.identity_verified,
        )
        return context
