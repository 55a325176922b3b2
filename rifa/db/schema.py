from __future__ import annotations


def ensure_schema(conn) -> None:
    cur = conn.cursor()
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS raffles (
            id uuid PRIMARY KEY,
            title text,
            total_numbers int NOT NULL CHECK (total_numbers > 0),
            price_per_number numeric(10,2) NOT NULL DEFAULT 5.00 CHECK (price_per_number > 0),
            currency text NOT NULL DEFAULT 'BRL',
            admin_password_hash text NOT NULL,
            admin_password_salt text NOT NULL,
            friendly_id text UNIQUE,
            created_at timestamptz NOT NULL DEFAULT now()
        );
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS purchases (
            id uuid PRIMARY KEY,
            raffle_id uuid NOT NULL REFERENCES raffles(id) ON DELETE CASCADE,
            name text NOT NULL,
            cpf text NOT NULL,
            numbers int[] NOT NULL,
            payment_id uuid,
            created_at timestamptz NOT NULL DEFAULT now()
        );
        """
    )
    cur.execute(
        "CREATE INDEX IF NOT EXISTS purchases_raffle_id_idx ON purchases (raffle_id);"
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS payments (
            id uuid PRIMARY KEY,
            raffle_id uuid NOT NULL REFERENCES raffles(id) ON DELETE CASCADE,
            purchase_id uuid REFERENCES purchases(id) ON DELETE SET NULL,
            payment_intent_id text NOT NULL UNIQUE,
            amount numeric(10,2) NOT NULL CHECK (amount >= 0),
            currency text NOT NULL DEFAULT 'brl',
            status text NOT NULL,
            payment_method text NOT NULL DEFAULT 'card',
            customer_name text,
            customer_email text,
            created_at timestamptz NOT NULL DEFAULT now(),
            updated_at timestamptz NOT NULL DEFAULT now()
        );
        """
    )
    cur.execute(
        "CREATE INDEX IF NOT EXISTS payments_raffle_id_idx ON payments (raffle_id);"
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS winners (
            id uuid PRIMARY KEY,
            raffle_id uuid NOT NULL REFERENCES raffles(id) ON DELETE CASCADE,
            purchase_id uuid REFERENCES purchases(id) ON DELETE SET NULL,
            winner_name text NOT NULL,
            winner_cpf text NOT NULL,
            winning_number int NOT NULL,
            drawn_at timestamptz NOT NULL DEFAULT now(),
            notes text,
            UNIQUE (raffle_id, winning_number)
        );
        """
    )
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS auth_attempts (
            ip_address text NOT NULL,
            raffle_id uuid NOT NULL REFERENCES raffles(id) ON DELETE CASCADE,
            attempt_count int NOT NULL DEFAULT 0,
            last_attempt timestamptz NOT NULL DEFAULT now(),
            created_at timestamptz NOT NULL DEFAULT now(),
            PRIMARY KEY (ip_address, raffle_id)
        );
        """
    )
    conn.commit()
    cur.close()
