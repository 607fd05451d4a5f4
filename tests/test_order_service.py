from datetime import date

import pytest
from bson import ObjectId

import database
import order_service
from errors import AuthorizationError, NotFoundError, ValidationError
from tests.helpers import make_user


@pytest.fixture
def host():
    return make_user("Hal")


@pytest.fixture
def guest():
    return make_user("Gus")


def list_stay(host_user):
    stay = {
        "name": "Loft",
        "price": 100,
        "host": {"_id": host_user.id, "fullname": host_user.fullname, "password": "secret"},
    }
    return str(database.get_collection("stay").insert_one(stay).inserted_id)


def book(caller, host_user, stay_id=None, **overrides):
    draft = {
        "totalPrice": 300,
        "pricePerNight": 100,
        "numNights": 3,
        "startDate": "2025-06-01",
        "endDate": "2025-06-04",
        "guests": 2,
        "stay": {"_id": stay_id or list_stay(host_user), "name": "Loft"},
    }
    draft.update(overrides)
    return order_service.add(draft, caller)


def test_add_stamps_server_fields_and_strips_passwords(guest, host, mongo_db):
    order = book(guest, host, status="approved", guest={"_id": str(ObjectId())})

    assert order["status"] == "pending"
    assert order["bookedAt"] == date.today().isoformat()
    assert order["cleaningFee"] == 0
    assert order["msgs"] == []
    assert order["guest"]["_id"] == guest.id
    assert order["host"]["_id"] == host.id
    assert "password" not in order["host"]

    stored = mongo_db["order"].find_one({"_id": ObjectId(order["_id"])})
    assert stored["host"]["_id"] == ObjectId(host.id)
    assert stored["guest"]["_id"] == ObjectId(guest.id)
    assert "password" not in stored["host"]


def test_add_takes_host_from_the_booked_stay(guest, host, mongo_db):
    someone_else = make_user("Vic")
    order = book(guest, host, host={"_id": someone_else.id, "fullname": "Vic"})

    stored = mongo_db["order"].find_one({"_id": ObjectId(order["_id"])})
    assert stored["host"]["_id"] == ObjectId(host.id)
    assert stored["host"]["fullname"] == host.fullname
    assert [o["_id"] for o in order_service.query({}, host)] == [order["_id"]]
    assert order_service.query({}, someone_else) == []
    with pytest.raises(AuthorizationError):
        order_service.update({"_id": order["_id"], "status": "approved"}, someone_else)


def test_add_validates_before_storage(guest, host, mongo_db):
    with pytest.raises(ValidationError):
        order_service.add({"startDate": "2025-06-01", "stay": {"_id": list_stay(host)}}, guest)
    with pytest.raises(ValidationError):
        book(guest, host, stay={"name": "Loft"})
    assert mongo_db["order"].count_documents({}) == 0


def test_add_for_unknown_stay(guest, host, mongo_db):
    with pytest.raises(NotFoundError):
        book(guest, host, stay_id=str(ObjectId()))
    with pytest.raises(NotFoundError):
        book(guest, host, stay_id="not-an-id")
    assert mongo_db["order"].count_documents({}) == 0


def test_get_by_id_for_owners_only(guest, host, admin):
    order = book(guest, host)
    for caller in (guest, host, admin):
        fetched = order_service.get_by_id(order["_id"], caller)
        assert fetched["_id"] == order["_id"]
        assert fetched["createdAt"] is not None
        assert isinstance(fetched["host"]["_id"], str)

    with pytest.raises(AuthorizationError):
        order_service.get_by_id(order["_id"], make_user("Eve"))
    with pytest.raises(NotFoundError):
        order_service.get_by_id(str(ObjectId()), guest)


def test_query_never_leaks_other_orders(guest, host, admin):
    other_guest, other_host = make_user("Oli"), make_user("Ona")
    mine = book(guest, host)
    book(other_guest, other_host)

    assert [o["_id"] for o in order_service.query({}, guest)] == [mine["_id"]]
    assert [o["_id"] for o in order_service.query({}, host)] == [mine["_id"]]
    assert order_service.query({}, make_user("Eve")) == []
    assert len(order_service.query({}, admin)) == 2


def test_query_filters(guest, host):
    stay_id = list_stay(host)
    book(guest, host, stay_id, totalPrice=150)
    book(guest, host, stay_id, totalPrice=450)
    prices = sorted(o["totalPrice"] for o in order_service.query({"totalPriceMin": 100, "totalPriceMax": 300}, guest))
    assert prices == [150]
    assert len(order_service.query({"stayId": stay_id, "status": "pending"}, guest)) == 2


def test_query_requires_login():
    with pytest.raises(AuthorizationError):
        order_service.query({}, None)


def test_host_can_update_status(guest, host):
    order = book(guest, host)
    updated = order_service.update({"_id": order["_id"], "status": "approved"}, host)
    assert updated["status"] == "approved"
    assert updated["totalPrice"] == 300


def test_stranger_update_leaves_order_unchanged(guest, host, mongo_db):
    order = book(guest, host)
    before = mongo_db["order"].find_one({"_id": ObjectId(order["_id"])})

    with pytest.raises(AuthorizationError):
        order_service.update({"_id": order["_id"], "status": "declined"}, make_user("Eve"))

    assert mongo_db["order"].find_one({"_id": ObjectId(order["_id"])}) == before


def test_update_keeps_owner_ids(guest, host, mongo_db):
    order = book(guest, host)
    intruder = str(ObjectId())
    order_service.update(
        {"_id": order["_id"], "host": {"_id": intruder, "fullname": "New Name", "password": "x"}},
        guest,
    )
    stored = mongo_db["order"].find_one({"_id": ObjectId(order["_id"])})
    assert stored["host"]["_id"] == ObjectId(host.id)
    assert stored["host"]["fullname"] == "New Name"
    assert "password" not in stored["host"]


def test_update_twice_is_idempotent(guest, host, mongo_db):
    order = book(guest, host)
    body = {"_id": order["_id"], "status": "approved", "msgs": [{"txt": "see you"}], "serviceFee": 12}

    order_service.update(dict(body), guest)
    first = mongo_db["order"].find_one({"_id": ObjectId(order["_id"])})
    order_service.update(dict(body), guest)
    second = mongo_db["order"].find_one({"_id": ObjectId(order["_id"])})
    assert first == second


def test_remove_by_guest_only(guest, host, admin):
    order = book(guest, host)
    with pytest.raises(NotFoundError):
        order_service.remove(order["_id"], host)
    assert order_service.remove(order["_id"], guest) == order["_id"]

    other = book(guest, host)
    assert order_service.remove(other["_id"], admin) == other["_id"]
