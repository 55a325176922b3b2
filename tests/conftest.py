import copy
import os
import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest

os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_dummy")

from rifa.core.security import new_password_hash  # noqa: E402
from rifa.cqrs.commands import auth as auth_commands  # noqa: E402
from rifa.cqrs.commands import payments as payments_commands  # noqa: E402
from rifa.cqrs.commands import purchases as purchases_commands  # noqa: E402
from rifa.cqrs.commands import raffles as raffles_commands  # noqa: E402
from rifa.cqrs.commands import winners as winners_commands  # noqa: E402

COMMAND_MODULES = (
    auth_commands,
    payments_commands,
    purchases_commands,
    raffles_commands,
    winners_commands,
)

ADMIN_PASSWORD = "segredo123"


def _now():
    return datetime.now(timezone.utc)


class FakeStore:
    """In-memory stand-in for ``rifa.db.store`` with transaction rollback."""

    def __init__(self):
        self.tables = {
            "raffles": {},
            "purchases": {},
            "payments": {},
            "winners": [],
            "auth_attempts": {},
        }

    def run_transaction(self, handler):
        snapshot = copy.deepcopy(self.tables)
        try:
            return handler(None)
        except Exception:
            self.tables = snapshot
            raise

    # seeding helpers used by tests

    def add_raffle(self, total_numbers=10, password=ADMIN_PASSWORD, price=Decimal("5.00")):
        password_hash, password_salt = new_password_hash(password)
        raffle_id = uuid.uuid4()
        self.tables["raffles"][raffle_id] = {
            "id": raffle_id,
            "title": "Rifa teste",
            "total_numbers": total_numbers,
            "price_per_number": price,
            "currency": "BRL",
            "admin_password_hash": password_hash,
            "admin_password_salt": password_salt,
            "friendly_id": "ABC234",
            "created_at": _now(),
        }
        return raffle_id

    def add_purchase(self, raffle_id, numbers, name="Ana", cpf="12345678901"):
        return self.insert_purchase(None, raffle_id, name, cpf, numbers)

    def add_winner(self, raffle_id, purchase, number):
        entry = {
            "number": number,
            "purchase_id": purchase["id"],
            "name": "Ana",
            "cpf": "12345678901",
        }
        return self.insert_winner(None, raffle_id, entry, None)

    def add_payment(self, raffle_id, intent_id="pi_123", status="requires_payment_method"):
        return self.insert_payment(
            None,
            raffle_id=raffle_id,
            payment_intent_id=intent_id,
            amount=Decimal("10.00"),
            currency="brl",
            status=status,
            payment_method="card",
            customer_name="Ana",
            customer_email=None,
        )

    def attempt(self, ip, raffle_id):
        return self.tables["auth_attempts"].get((ip, raffle_id))

    @property
    def purchases(self):
        return list(self.tables["purchases"].values())

    @property
    def winners(self):
        return list(self.tables["winners"])

    @property
    def payments(self):
        return list(self.tables["payments"].values())

    # rifa.db.store interface

    def friendly_id_taken(self, conn, friendly_id):
        return any(r["friendly_id"] == friendly_id for r in self.tables["raffles"].values())

    def insert_raffle(
        self, conn, *, title, total_numbers, price_per_number, password_hash, password_salt, friendly_id
    ):
        raffle_id = uuid.uuid4()
        row = {
            "id": raffle_id,
            "title": title,
            "total_numbers": total_numbers,
            "price_per_number": price_per_number,
            "currency": "BRL",
            "admin_password_hash": password_hash,
            "admin_password_salt": password_salt,
            "friendly_id": friendly_id,
            "created_at": _now(),
        }
        self.tables["raffles"][raffle_id] = row
        return dict(row)

    def get_raffle(self, conn, raffle_id):
        row = self.tables["raffles"].get(raffle_id)
        return dict(row) if row else None

    def lock_raffle(self, conn, raffle_id):
        return self.get_raffle(conn, raffle_id)

    def list_raffle_purchases(self, conn, raffle_id):
        return [
            {"id": p["id"], "name": p["name"], "cpf": p["cpf"], "numbers": list(p["numbers"])}
            for p in self.tables["purchases"].values()
            if p["raffle_id"] == raffle_id
        ]

    def insert_purchase(self, conn, raffle_id, name, cpf, numbers):
        purchase_id = uuid.uuid4()
        row = {
            "id": purchase_id,
            "raffle_id": raffle_id,
            "name": name,
            "cpf": cpf,
            "numbers": list(numbers),
            "payment_id": None,
            "created_at": _now(),
        }
        self.tables["purchases"][purchase_id] = row
        return dict(row)

    def delete_purchase(self, conn, raffle_id, purchase_id):
        row = self.tables["purchases"].get(purchase_id)
        if not row or row["raffle_id"] != raffle_id:
            return False
        del self.tables["purchases"][purchase_id]
        for payment in self.tables["payments"].values():
            if payment["purchase_id"] == purchase_id and payment["raffle_id"] == raffle_id:
                payment["purchase_id"] = None
        return True

    def lock_payment(self, conn, payment_id):
        row = self.tables["payments"].get(payment_id)
        if not row:
            return None
        return {"id": row["id"], "raffle_id": row["raffle_id"], "purchase_id": row["purchase_id"]}

    def lock_purchase(self, conn, purchase_id):
        row = self.tables["purchases"].get(purchase_id)
        if not row:
            return None
        return {"id": row["id"], "raffle_id": row["raffle_id"], "payment_id": row["payment_id"]}

    def link_payment(self, conn, payment_id, purchase_id):
        payment = self.tables["payments"].get(payment_id)
        purchase = self.tables["purchases"].get(purchase_id)
        if (
            not payment
            or not purchase
            or payment["raffle_id"] != purchase["raffle_id"]
            or payment["purchase_id"] is not None
            or purchase["payment_id"] is not None
        ):
            return False
        payment["purchase_id"] = purchase_id
        purchase["payment_id"] = payment_id
        return True

    def drawn_numbers(self, conn, raffle_id):
        return {w["winning_number"] for w in self.tables["winners"] if w["raffle_id"] == raffle_id}

    def insert_winner(self, conn, raffle_id, entry, notes):
        row = {
            "id": uuid.uuid4(),
            "raffle_id": raffle_id,
            "purchase_id": entry["purchase_id"],
            "winner_name": entry["name"],
            "winner_cpf": entry["cpf"],
            "winning_number": entry["number"],
            "drawn_at": _now(),
            "notes": notes,
        }
        self.tables["winners"].append(row)
        return dict(row)

    def lock_auth_attempt(self, conn, ip_address, raffle_id):
        row = self.tables["auth_attempts"].get((ip_address, raffle_id))
        return dict(row) if row else None

    def reset_auth_attempts(self, conn, ip_address, raffle_id, now):
        row = self.tables["auth_attempts"].get((ip_address, raffle_id))
        if row:
            row["attempt_count"] = 0
            row["last_attempt"] = now

    def record_failed_attempt(self, conn, ip_address, raffle_id, now, window_start):
        key = (ip_address, raffle_id)
        row = self.tables["auth_attempts"].get(key)
        if row is None:
            row = {"ip_address": ip_address, "raffle_id": raffle_id, "attempt_count": 1}
            self.tables["auth_attempts"][key] = row
        elif row["last_attempt"] > window_start:
            row["attempt_count"] += 1
        else:
            row["attempt_count"] = 1
        row["last_attempt"] = now
        return row["attempt_count"]

    def insert_payment(self, conn, **fields):
        payment_id = uuid.uuid4()
        row = {
            "id": payment_id,
            "purchase_id": None,
            "created_at": _now(),
            "updated_at": _now(),
            **fields,
        }
        self.tables["payments"][payment_id] = row
        return dict(row)

    def update_payment_status(self, conn, payment_intent_id, status):
        for row in self.tables["payments"].values():
            if row["payment_intent_id"] == payment_intent_id:
                row["status"] = status
                row["updated_at"] = _now()
                return {"id": row["id"], "raffle_id": row["raffle_id"], "status": status}
        return None


@pytest.fixture
def fake_store(monkeypatch):
    fake = FakeStore()
    for module in COMMAND_MODULES:
        monkeypatch.setattr(module, "store", fake)
        monkeypatch.setattr(module, "run_transaction", fake.run_transaction)
    return fake
