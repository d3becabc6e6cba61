"""Initial OrderDesk schema

Revision ID: 001
Revises:
Create Date: 2026-10-18

Creates: users, teams, reseller_members, staff_members, categories, orders,
         order_passes, disputes, chats, messages, files, audit_logs
Enums: userrole, memberrole, memberstatus, staffstatus, orderstatus, ordersla,
       disputestatus, fileentitytype
"""

from collections.abc import Sequence

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto;")

    # ── 1. Enum types ─────────────────────────────────────────────────────
    op.execute("CREATE TYPE userrole AS ENUM ('owner', 'staff', 'reseller');")
    op.execute("CREATE TYPE memberrole AS ENUM ('admin', 'member');")
    op.execute("""
        CREATE TYPE memberstatus AS ENUM (
            'pending_invitation', 'active_member', 'suspended_member', 'default_member'
        );
    """)
    op.execute("CREATE TYPE staffstatus AS ENUM ('online', 'offline');")
    op.execute("""
        CREATE TYPE orderstatus AS ENUM (
            'submitted', 'picked', 'in_progress', 'on_hold',
            'fulfil_submitted', 'completed', 'disputed', 'cancelled'
        );
    """)
    op.execute("CREATE TYPE ordersla AS ENUM ('asap', 'today', '24h');")
    op.execute("""
        CREATE TYPE disputestatus AS ENUM (
            'open', 'approved', 'declined', 'partial_refund', 'resolved'
        );
    """)
    op.execute("""
        CREATE TYPE fileentitytype AS ENUM ('order', 'message', 'dispute', 'fulfilment');
    """)

    # ── 2. Identity ───────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE users (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            email VARCHAR(255) NOT NULL UNIQUE,
            name VARCHAR(200),
            role userrole NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX ix_users_role ON users (role);")

    op.execute("""
        CREATE TABLE teams (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            name VARCHAR(200) NOT NULL,
            slug VARCHAR(200) NOT NULL UNIQUE,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)

    op.execute("""
        CREATE TABLE reseller_members (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            team_id UUID NOT NULL REFERENCES teams(id) ON DELETE CASCADE,
            user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            role memberrole NOT NULL DEFAULT 'member',
            status memberstatus NOT NULL,
            is_active BOOLEAN NOT NULL DEFAULT false,
            is_blocked BOOLEAN NOT NULL DEFAULT false,
            approved_by_user_id UUID REFERENCES users(id) ON DELETE SET NULL,
            approved_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX ix_reseller_members_team_id ON reseller_members (team_id);")
    op.execute("CREATE INDEX ix_reseller_members_user_id ON reseller_members (user_id);")
    op.execute("CREATE INDEX ix_reseller_members_status ON reseller_members (status);")
    op.execute("""
        CREATE UNIQUE INDEX uq_reseller_members_active_user
            ON reseller_members (user_id) WHERE is_active;
    """)

    op.execute("""
        CREATE TABLE staff_members (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
            status staffstatus NOT NULL DEFAULT 'offline',
            is_active BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)

    # ── 3. Orders ─────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE categories (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            name VARCHAR(200) NOT NULL,
            slug VARCHAR(200) NOT NULL UNIQUE,
            is_active BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)

    op.execute("""
        CREATE TABLE orders (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            team_id UUID NOT NULL REFERENCES teams(id) ON DELETE RESTRICT,
            created_by_user_id UUID NOT NULL REFERENCES users(id) ON DELETE RESTRICT,
            picked_by_staff_user_id UUID REFERENCES users(id) ON DELETE RESTRICT,

            category_id UUID NOT NULL REFERENCES categories(id) ON DELETE RESTRICT,
            sla ordersla NOT NULL,
            cart_value_usd NUMERIC(12, 2) NOT NULL CHECK (cart_value_usd >= 0),
            currency_override VARCHAR(3),

            merchant VARCHAR(255) NOT NULL,
            customer_name VARCHAR(255) NOT NULL,
            country VARCHAR(100) NOT NULL,
            city VARCHAR(100) NOT NULL,
            contact VARCHAR(255),
            pickup_address TEXT,
            delivery_address TEXT,
            time_window VARCHAR(100),
            items_summary TEXT,
            attachment_file_ids JSONB NOT NULL DEFAULT '[]'::jsonb,

            status orderstatus NOT NULL DEFAULT 'submitted',
            accepted_at TIMESTAMPTZ,
            hold_reason TEXT,
            auto_cancel_at TIMESTAMPTZ,
            fulfilment JSONB,

            read_access_user_ids JSONB NOT NULL DEFAULT '[]'::jsonb,
            write_access_user_ids JSONB NOT NULL DEFAULT '[]'::jsonb,

            version INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX ix_orders_status_created_at ON orders (status, created_at);")
    op.execute("CREATE INDEX ix_orders_team_id_created_at ON orders (team_id, created_at);")
    op.execute("CREATE INDEX ix_orders_created_by_user_id ON orders (created_by_user_id);")
    op.execute(
        "CREATE INDEX ix_orders_picked_by_staff_user_id ON orders (picked_by_staff_user_id);"
    )
    op.execute("CREATE INDEX ix_orders_created_at ON orders (created_at);")

    op.execute("""
        CREATE TABLE order_passes (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            order_id UUID NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
            staff_user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            reason TEXT NOT NULL,
            passed_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_order_passes_order_staff UNIQUE (order_id, staff_user_id)
        );
    """)

    # ── 4. Satellites ─────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE disputes (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            order_id UUID NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
            team_id UUID NOT NULL REFERENCES teams(id) ON DELETE CASCADE,
            raised_by_user_id UUID NOT NULL REFERENCES users(id) ON DELETE RESTRICT,
            reason TEXT NOT NULL,
            attachment_file_ids JSONB NOT NULL DEFAULT '[]'::jsonb,
            status disputestatus NOT NULL DEFAULT 'open',
            resolution_notes TEXT,
            adjustment_amount_usd NUMERIC(12, 2),
            resolved_by_user_id UUID REFERENCES users(id) ON DELETE SET NULL,
            resolved_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX ix_disputes_order_id ON disputes (order_id);")
    op.execute("CREATE INDEX ix_disputes_team_id ON disputes (team_id);")
    op.execute("CREATE INDEX ix_disputes_status ON disputes (status);")

    op.execute("""
        CREATE TABLE chats (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            order_id UUID NOT NULL UNIQUE REFERENCES orders(id) ON DELETE CASCADE,
            is_open BOOLEAN NOT NULL DEFAULT true,
            opened_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            closed_at TIMESTAMPTZ
        );
    """)

    op.execute("""
        CREATE TABLE messages (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            chat_id UUID NOT NULL REFERENCES chats(id) ON DELETE CASCADE,
            sender_user_id UUID NOT NULL REFERENCES users(id) ON DELETE RESTRICT,
            content TEXT NOT NULL DEFAULT '',
            attachment_file_ids JSONB NOT NULL DEFAULT '[]'::jsonb,
            viewed_by_user_ids JSONB NOT NULL DEFAULT '[]'::jsonb,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX ix_messages_chat_id_created_at ON messages (chat_id, created_at);")

    op.execute("""
        CREATE TABLE files (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            storage_id VARCHAR(255) NOT NULL UNIQUE,
            ui_name VARCHAR(255) NOT NULL,
            size_bytes BIGINT NOT NULL,
            content_type VARCHAR(100),
            uploaded_by_user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            entity_type fileentitytype,
            entity_id UUID,
            linked_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX ix_files_entity ON files (entity_type, entity_id);")
    op.execute("CREATE INDEX ix_files_uploaded_by_user_id ON files (uploaded_by_user_id);")

    # ── 5. Audit log ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE audit_logs (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            actor_user_id UUID NOT NULL REFERENCES users(id) ON DELETE RESTRICT,
            entity VARCHAR(50) NOT NULL,
            entity_id VARCHAR(64) NOT NULL,
            action VARCHAR(100) NOT NULL,
            metadata JSONB NOT NULL DEFAULT '{}'::jsonb,
            order_id UUID REFERENCES orders(id) ON DELETE SET NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute(
        "CREATE INDEX ix_audit_logs_order_id_created_at ON audit_logs (order_id, created_at);"
    )
    op.execute("CREATE INDEX ix_audit_logs_action ON audit_logs (action);")
    op.execute("CREATE INDEX ix_audit_logs_actor_user_id ON audit_logs (actor_user_id);")
    op.execute("CREATE INDEX ix_audit_logs_created_at ON audit_logs (created_at);")


def downgrade() -> None:
    for table in (
        "audit_logs",
        "files",
        "messages",
        "chats",
        "disputes",
        "order_passes",
        "orders",
        "categories",
        "staff_members",
        "reseller_members",
        "teams",
        "users",
    ):
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE;")

    for enum_name in (
        "fileentitytype",
        "disputestatus",
        "ordersla",
        "orderstatus",
        "staffstatus",
        "memberstatus",
        "memberrole",
        "userrole",
    ):
        op.execute(f"DROP TYPE IF EXISTS {enum_name};")
