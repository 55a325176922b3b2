import uuid

import pytest
from fastapi import HTTPException

from rifa.cqrs.commands import purchases
from rifa.cqrs.commands import raffles
from rifa.cqrs.queries.purchases import export_filename, mask_cpf
from rifa.cqrs.queries.raffles import split_numbers
from rifa.models.schemas import PurchaseCreate, RaffleCreate


def _payload(numbers, **extra):
    return PurchaseCreate(name="Bruno", cpf="98765432100", numbers=numbers, **extra)


def test_find_unavailable_splits_out_of_range_and_sold():
    out_of_range, already_sold = purchases.find_unavailable([0, 3, 7, 11], [7, 8], 10)
    assert out_of_range == [0, 11]
    assert already_sold == [7]


def test_purchase_records_exact_numbers(fake_store):
    raffle_id = fake_store.add_raffle(total_numbers=10)

    result = purchases.purchase_numbers(raffle_id, _payload([3, 7]))

    assert result["numbers"] == [3, 7]
    assert result["raffle_id"] == str(raffle_id)
    assert [p["numbers"] for p in fake_store.purchases] == [[3, 7]]


def test_purchase_rejects_numbers_already_sold(fake_store):
    raffle_id = fake_store.add_raffle(total_numbers=10)
    purchases.purchase_numbers(raffle_id, _payload([3, 7]))

    with pytest.raises(HTTPException) as excinfo:
        purchases.purchase_numbers(raffle_id, _payload([7, 9]))

    assert excinfo.value.status_code == 409
    assert excinfo.value.detail["numbers"] == [7]
    assert excinfo.value.detail["message"] == "Numbers 7 are already purchased"
    assert len(fake_store.purchases) == 1


@pytest.mark.parametrize("number", [0, 11])
def test_purchase_rejects_numbers_outside_range(fake_store, number):
    raffle_id = fake_store.add_raffle(total_numbers=10)

    with pytest.raises(HTTPException) as excinfo:
        purchases.purchase_numbers(raffle_id, _payload([number]))

    assert excinfo.value.status_code == 400
    assert excinfo.value.detail["numbers"] == [number]
    assert "outside the valid range" in excinfo.value.detail["message"]
    assert fake_store.purchases == []


def test_purchase_rejects_duplicate_numbers(fake_store):
    raffle_id = fake_store.add_raffle(total_numbers=10)

    with pytest.raises(HTTPException) as excinfo:
        purchases.purchase_numbers(raffle_id, _payload([4, 4]))

    assert excinfo.value.status_code == 400
    assert fake_store.purchases == []


def test_purchase_unknown_raffle(fake_store):
    with pytest.raises(HTTPException) as excinfo:
        purchases.purchase_numbers(uuid.uuid4(), _payload([1]))
    assert excinfo.value.status_code == 404


def test_purchase_links_payment(fake_store):
    raffle_id = fake_store.add_raffle(total_numbers=10)
    payment = fake_store.add_payment(raffle_id)

    result = purchases.purchase_numbers(raffle_id, _payload([5], payment_id=payment["id"]))

    purchase = fake_store.purchases[0]
    assert result["payment_id"] == str(payment["id"])
    assert purchase["payment_id"] == payment["id"]
    assert fake_store.payments[0]["purchase_id"] == purchase["id"]


def test_purchase_with_foreign_payment_writes_nothing(fake_store):
    raffle_id = fake_store.add_raffle(total_numbers=10)
    other_raffle = fake_store.add_raffle(total_numbers=10)
    payment = fake_store.add_payment(other_raffle)

    with pytest.raises(HTTPException) as excinfo:
        purchases.purchase_numbers(raffle_id, _payload([5], payment_id=payment["id"]))

    assert excinfo.value.status_code == 404
    assert fake_store.purchases == []


def test_sold_numbers_stay_disjoint(fake_store):
    raffle_id = fake_store.add_raffle(total_numbers=6)
    requests = [[1, 2], [2, 3], [3, 4], [5], [5, 6], [6]]
    for numbers in requests:
        try:
            purchases.purchase_numbers(raffle_id, _payload(numbers))
        except HTTPException:
            pass

    sold = [n for p in fake_store.purchases for n in p["numbers"]]
    assert len(sold) == len(set(sold))
    assert all(1 <= n <= 6 for n in sold)
    assert sorted(sold) == [1, 2, 3, 4, 5, 6]


def test_delete_purchase_frees_numbers(fake_store):
    raffle_id = fake_store.add_raffle(total_numbers=10)
    created = purchases.purchase_numbers(raffle_id, _payload([2]))

    raffles.delete_purchase(raffle_id, uuid.UUID(created["purchase_id"]))
    purchases.purchase_numbers(raffle_id, _payload([2]))

    assert [p["numbers"] for p in fake_store.purchases] == [[2]]


def test_delete_unknown_purchase(fake_store):
    raffle_id = fake_store.add_raffle()
    with pytest.raises(HTTPException) as excinfo:
        raffles.delete_purchase(raffle_id, uuid.uuid4())
    assert excinfo.value.status_code == 404


def test_create_raffle_hashes_password_and_assigns_code(fake_store):
    result = raffles.create_raffle(RaffleCreate(total_numbers=50, admin_password="123456"))

    row = fake_store.tables["raffles"][uuid.UUID(result["raffle_id"])]
    assert len(result["friendly_id"]) == raffles.FRIENDLY_ID_LENGTH
    assert row["admin_password_hash"] != "123456"
    assert row["price_per_number"] == raffles.settings.default_price_per_number


def test_split_numbers_scans_whole_pool():
    available, sold = split_numbers(5, [[2, 4], [5]])
    assert available == [1, 3]
    assert sold == [2, 4, 5]


def test_export_masks_cpf():
    assert mask_cpf("12345678901") == "123*****901"
    assert export_filename("0123456789abcdef") == "raffle_01234567_export.json"


def test_delete_purchase_of_other_raffle_keeps_links(fake_store):
    raffle_id = fake_store.add_raffle()
    other_id = fake_store.add_raffle()
    payment = fake_store.add_payment(other_id)
    created = purchases.purchase_numbers(other_id, _payload([1], payment_id=payment["id"]))
    purchase_id = uuid.UUID(created["purchase_id"])

    with pytest.raises(HTTPException) as excinfo:
        raffles.delete_purchase(raffle_id, purchase_id)

    assert excinfo.value.status_code == 404
    assert fake_store.payments[0]["purchase_id"] == purchase_id
    assert fake_store.purchases[0]["payment_id"] == payment["id"]


def test_purchase_with_used_payment_writes_nothing(fake_store):
    raffle_id = fake_store.add_raffle(total_numbers=10)
    payment = fake_store.add_payment(raffle_id)
    purchases.purchase_numbers(raffle_id, _payload([1], payment_id=payment["id"]))

    with pytest.raises(HTTPException) as excinfo:
        purchases.purchase_numbers(raffle_id, _payload([2, 3, 4], payment_id=payment["id"]))

    assert excinfo.value.status_code == 409
    assert [p["numbers"] for p in fake_store.purchases] == [[1]]
