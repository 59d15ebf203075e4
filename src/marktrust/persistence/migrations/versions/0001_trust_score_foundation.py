"""Trust score foundation: entities, related records, ledger and audit tables.

Revision ID: 0001
Revises:
Create Date: 2026-10-18

Creates:
- crypto_projects / businesses: scored entities with trust_score columns
- business_founders, entity_documents, identity_verifications: records
  read by the evaluation context
- trust_score_events: append-only score ledger
- audit_events: append-only audit log

trust_score_events and audit_events reject UPDATE and DELETE via trigger.
"""

from alembic import op

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create tables, indexes and immutability triggers."""

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS crypto_projects (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            name TEXT,
            symbol TEXT,
            description TEXT,
            category TEXT,
            website TEXT,
            whitepaper TEXT,
            twitter TEXT,
            discord TEXT,
            telegram TEXT,
            github TEXT,
            total_supply TEXT,
            team_allocation_percent DOUBLE PRECISION,
            team_vesting_months INTEGER,
            team_cliff_months INTEGER,
            liquidity_lock_months INTEGER,
            audit_provider TEXT,
            audit_report_url TEXT,
            contract_address TEXT,
            contract_verified BOOLEAN NOT NULL DEFAULT FALSE,
            status TEXT NOT NULL DEFAULT 'DRAFT',
            trust_score INTEGER NOT NULL DEFAULT 50
                CHECK (trust_score BETWEEN 0 AND 100),
            trust_score_updated_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
        """
    )

    op.execute(
        """
        CREATE INDEX IF NOT EXISTS ix_crypto_projects_user_id
        ON crypto_projects (user_id)
        """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS businesses (
            id TEXT PRIMARY KEY,
            user_id TEXT NOT NULL,
            legal_name TEXT,
            dba TEXT,
            legal_entity_type TEXT,
            jurisdiction TEXT,
            ein TEXT,
            registration_number TEXT,
            business_email TEXT,
            website TEXT,
            description TEXT,
            industry TEXT,
            kyb_level TEXT NOT NULL DEFAULT 'NONE',
            status TEXT NOT NULL DEFAULT 'DRAFT',
            trust_score INTEGER NOT NULL DEFAULT 50
                CHECK (trust_score BETWEEN 0 AND 100),
            trust_score_updated_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
        """
    )

    op.execute(
        """
        CREATE INDEX IF NOT EXISTS ix_businesses_user_id
        ON businesses (user_id)
        """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS business_founders (
            founder_id TEXT PRIMARY KEY,
            business_id TEXT NOT NULL REFERENCES businesses (id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            kyc_verified BOOLEAN NOT NULL DEFAULT FALSE
        )
        """
    )

    op.execute(
        """
        CREATE INDEX IF NOT EXISTS ix_business_founders_business_id
        ON business_founders (business_id)
        """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS entity_documents (
            document_id TEXT PRIMARY KEY,
            entity_type TEXT NOT NULL CHECK (entity_type IN ('project', 'business')),
            entity_id TEXT NOT NULL,
            doc_type TEXT NOT NULL,
            is_verified BOOLEAN NOT NULL DEFAULT FALSE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
        """
    )

    op.execute(
        """
        CREATE INDEX IF NOT EXISTS ix_entity_documents_entity
        ON entity_documents (entity_type, entity_id)
        """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS identity_verifications (
            user_id TEXT PRIMARY KEY,
            status TEXT NOT NULL DEFAULT 'NOT_STARTED',
            is_accredited BOOLEAN NOT NULL DEFAULT FALSE,
            verified_at TIMESTAMPTZ
        )
        """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS trust_score_events (
            seq BIGSERIAL UNIQUE,
            event_id TEXT PRIMARY KEY,
            entity_type TEXT NOT NULL CHECK (entity_type IN ('project', 'business')),
            entity_id TEXT NOT NULL,
            event_type TEXT NOT NULL,
            points INTEGER NOT NULL,
            reason TEXT NOT NULL,
            triggered_by TEXT,
            metadata JSONB NOT NULL DEFAULT '{}'::jsonb,
            created_at TIMESTAMPTZ NOT NULL
        )
        """
    )

    op.execute(
        """
        CREATE INDEX IF NOT EXISTS ix_trust_score_events_entity
        ON trust_score_events (entity_type, entity_id, created_at DESC, seq DESC)
        """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS audit_events (
            event_id TEXT PRIMARY KEY,
            occurred_at TIMESTAMPTZ NOT NULL,
            event_type TEXT NOT NULL,
            resource_type TEXT,
            resource_id TEXT,
            actor_id TEXT,
            event JSONB NOT NULL
        )
        """
    )

    op.execute(
        """
        CREATE INDEX IF NOT EXISTS ix_audit_events_resource
        ON audit_events (resource_type, resource_id)
        """
    )

    op.execute(
        """
        CREATE INDEX IF NOT EXISTS ix_audit_events_occurred_at
        ON audit_events (occurred_at)
        """
    )

    op.execute(
        """
        CREATE OR REPLACE FUNCTION marktrust_reject_mutation()
        RETURNS TRIGGER AS $$
        BEGIN
            RAISE EXCEPTION '% rows are immutable: UPDATE and DELETE are not allowed',
                TG_TABLE_NAME;
        END;
        $$ LANGUAGE plpgsql
        """
    )

    op.execute(
        """
        CREATE TRIGGER trust_score_events_immutability
        BEFORE UPDATE OR DELETE ON trust_score_events
        FOR EACH ROW EXECUTE FUNCTION marktrust_reject_mutation()
        """
    )

    op.execute(
        """
        CREATE TRIGGER audit_events_immutability
        BEFORE UPDATE OR DELETE ON audit_events
        FOR EACH ROW EXECUTE FUNCTION marktrust_reject_mutation()
        """
    )


def downgrade() -> None:
    """Drop triggers and tables."""

    op.execute("DROP TRIGGER IF EXISTS audit_events_immutability ON audit_events")
    op.execute("DROP TRIGGER IF EXISTS trust_score_events_immutability ON trust_score_events")
    op.execute("DROP FUNCTION IF EXISTS marktrust_reject_mutation()")

    op.execute("DROP TABLE IF EXISTS audit_events")
    op.execute("DROP TABLE IF EXISTS trust_score_events")
    op.execute("DROP TABLE IF EXISTS identity_verifications")
    op.execute("DROP TABLE IF EXISTS entity_documents")
    op.execute("DROP TABLE IF EXISTS business_founders")
    op.execute("DROP TABLE IF EXISTS businesses")
    op.execute("DROP TABLE IF EXISTS crypto_projects")
