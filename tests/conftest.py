import mongomock
import pytest

import database
from tests.helpers import make_user


@pytest.fixture(autouse=True)
def mongo_db(monkeypatch):
    test_db = mongomock.MongoClient().db
    monkeypatch.setattr(database, "db", test_db)
    return test_db


@pytest.fixture
def u1():
    return make_user("Ulla")


@pytest.fixture
def u2():
    return make_user("Uri")


@pytest.fixture
def u3():
    return make_user("Uma")


@pytest.fixture
def admin():
    return make_user("Ada", is_admin=True)
