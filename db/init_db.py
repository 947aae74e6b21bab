"""
db/init_db.py
-------------
Creates the database schema (tables, indexes and the overdue procedure)
if they do not already exist. Run this module directly to initialize a
fresh database:
    python -m db.init_db
"""

from db.connection import cursor
from utils.logger import get_logger

logger = get_logger(__name__)

SCHEMA_SQL = """
DO $$ BEGIN
    CREATE TYPE payment_status AS ENUM ('pending', 'paid', 'overdue');
EXCEPTION
    WHEN duplicate_object THEN NULL;
END $$;

-- Profiles: one row per tenant (Telegram user)
CREATE TABLE IF NOT EXISTS profiles (
    id              SERIAL PRIMARY KEY,
    telegram_id     BIGINT UNIQUE NOT NULL,
    full_name       VARCHAR(150),
    phone           VARCHAR(30),
    pix_key         VARCHAR(150),
    created_at      TIMESTAMPTZ DEFAULT NOW()
);

-- Clients: people billed by a tenant. Totals are computed on read.
CREATE TABLE IF NOT EXISTS clients (
    id              SERIAL PRIMARY KEY,
    user_id         BIGINT NOT NULL REFERENCES profiles(telegram_id) ON DELETE CASCADE,
    name            VARCHAR(150) NOT NULL,
    phone           VARCHAR(30) NOT NULL,
    email           VARCHAR(150),
    created_at      TIMESTAMPTZ DEFAULT NOW()
);

-- Charges: one-off or recurring amounts owed by a client
CREATE TABLE IF NOT EXISTS charges (
    id                          SERIAL PRIMARY KEY,
    user_id                     BIGINT NOT NULL REFERENCES profiles(telegram_id) ON DELETE CASCADE,
    client_id                   INT NOT NULL REFERENCES clients(id) ON DELETE CASCADE,
    amount                      NUMERIC(12,2) NOT NULL CHECK (amount > 0),
    due_date                    DATE NOT NULL,
    status                      payment_status NOT NULL DEFAULT 'pending',
    is_canceled                 BOOLEAN NOT NULL DEFAULT FALSE,
    paid_at                     TIMESTAMPTZ,
    notes                       TEXT,
    payment_link                TEXT,
    is_recurrent                BOOLEAN NOT NULL DEFAULT FALSE,
    recurrence_interval         VARCHAR(20) CHECK (recurrence_interval IN
                                    ('weekly', 'biweekly', 'monthly', 'quarterly', 'yearly')),
    recurrence_day              INT CHECK (recurrence_day BETWEEN 1 AND 31),
    next_charge_date            DATE,
    parent_charge_id            INT REFERENCES charges(id) ON DELETE SET NULL,
    last_notification_sent_at   TIMESTAMPTZ,
    successor_spawned_at        TIMESTAMPTZ,
    created_at                  TIMESTAMPTZ DEFAULT NOW(),
    updated_at                  TIMESTAMPTZ DEFAULT NOW(),
    CHECK (is_recurrent = (next_charge_date IS NOT NULL))
);

-- Notifications: immutable log of messages addressed to clients
CREATE TABLE IF NOT EXISTS notifications (
    id                  SERIAL PRIMARY KEY,
    charge_id           INT NOT NULL REFERENCES charges(id) ON DELETE CASCADE,
    client_id           INT NOT NULL REFERENCES clients(id) ON DELETE CASCADE,
    user_id             BIGINT NOT NULL REFERENCES profiles(telegram_id) ON DELETE CASCADE,
    notification_type   VARCHAR(30) NOT NULL CHECK (notification_type IN
                            ('reminder', 'overdue', 'payment_confirmed')),
    channel             VARCHAR(20) NOT NULL,
    message_content     TEXT,
    sent_at             TIMESTAMPTZ DEFAULT NOW(),
    status              VARCHAR(20)
);

-- Columns added after the first release
ALTER TABLE charges ADD COLUMN IF NOT EXISTS successor_spawned_at TIMESTAMPTZ;

-- Indexes for faster queries
CREATE INDEX IF NOT EXISTS idx_clients_user ON clients(user_id);
CREATE INDEX IF NOT EXISTS idx_charges_user ON charges(user_id);
CREATE INDEX IF NOT EXISTS idx_charges_client ON charges(client_id);
CREATE INDEX IF NOT EXISTS idx_charges_due_status ON charges(due_date, status) WHERE is_canceled = FALSE;
CREATE INDEX IF NOT EXISTS idx_notifications_charge ON notifications(charge_id, notification_type);
-- A recurring charge has at most one successor
CREATE UNIQUE INDEX IF NOT EXISTS uq_charges_parent ON charges(parent_charge_id)
    WHERE parent_charge_id IS NOT NULL;

-- Batch promotion of past-due pending charges
CREATE OR REPLACE FUNCTION update_overdue_charges() RETURNS void AS $$
BEGIN
    UPDATE charges
    SET status = 'overdue', updated_at = NOW()
    WHERE status = 'pending'
      AND is_canceled = FALSE
      AND due_date < CURRENT_DATE;
END;
$$ LANGUAGE plpgsql;
"""


def create_tables() -> None:
    """
    Execute the schema SQL to create all tables.
    Safe to call multiple times (uses IF NOT EXISTS / OR REPLACE).
    """
    with cursor("initialize schema") as cur:
        cur.execute(SCHEMA_SQL)
    logger.info("Database schema initialized successfully.")


if __name__ == "__main__":
    from db.connection import init_pool
    init_pool()
    create_tables()
    print("✅ Database schema created successfully.")
