"""Scheduling schema: spaces, reservations, payments (SQL-only).

Revision ID: 001_scheduling_schema
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op


# revision identifiers, used by Alembic.
revision = "001_scheduling_schema"
down_revision = None
branch_labels = None
depends_on = None


SCHEMA_SQL = """
CREATE EXTENSION IF NOT EXISTS btree_gist;

CREATE TABLE spaces (
    id          text PRIMARY KEY,
    name        text NOT NULL,
    price       numeric(10, 2) NOT NULL CHECK (price >= 0),
    is_active   boolean NOT NULL DEFAULT true,
    created_at  timestamptz NOT NULL DEFAULT now(),
    updated_at  timestamptz NOT NULL DEFAULT now()
);

CREATE TABLE reservations (
    id           text PRIMARY KEY,
    space_id     text NOT NULL REFERENCES spaces (id),
    user_id      text NOT NULL,
    start_date   timestamptz NOT NULL,
    end_date     timestamptz NOT NULL,
    total_price  numeric(10, 2) NOT NULL CHECK (total_price >= 0),
    status       text NOT NULL DEFAULT 'PENDING'
                 CHECK (status IN ('PENDING', 'CONFIRMED', 'CANCELLED', 'COMPLETED')),
    notes        text,
    created_at   timestamptz NOT NULL DEFAULT now(),
    updated_at   timestamptz NOT NULL DEFAULT now(),
    CONSTRAINT reservations_interval_valid CHECK (start_date < end_date),
    CONSTRAINT reservations_no_overlap EXCLUDE USING gist (
        space_id WITH =,
        tstzrange(start_date, end_date, '[)') WITH &&
    ) WHERE (status IN ('PENDING', 'CONFIRMED'))
);

CREATE INDEX reservations_space_status_idx ON reservations (space_id, status, start_date);
CREATE INDEX reservations_user_idx ON reservations (user_id, start_date DESC);
CREATE INDEX reservations_confirmed_end_idx ON reservations (end_date)
    WHERE status = 'CONFIRMED';

CREATE TABLE payments (
    id              text PRIMARY KEY,
    reservation_id  text NOT NULL REFERENCES reservations (id),
    user_id         text NOT NULL,
    amount          numeric(10, 2) NOT NULL CHECK (amount >= 0),
    method          text NOT NULL CHECK (method IN ('CARD', 'BANK_TRANSFER', 'PAYPAL')),
    status          text NOT NULL DEFAULT 'PENDING'
                    CHECK (status IN ('PENDING', 'PAID', 'FAILED', 'REFUNDED')),
    transaction_id  text,
    created_at      timestamptz NOT NULL DEFAULT now(),
    updated_at      timestamptz NOT NULL DEFAULT now(),
    CONSTRAINT payments_reservation_id_key UNIQUE (reservation_id)
);
"""


def upgrade() -> None:
    # Use raw execution so the multi-statement script runs as-is.
    conn = op.get_bind()
    conn.exec_driver_sql(SCHEMA_SQL)


def downgrade() -> None:
    raise NotImplementedError("Downgrade not supported")
