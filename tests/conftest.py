from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from cafe_db.accounts import AccountManager
from cafe_db.catalog import CatalogManager
from cafe_db.database import DatabaseManager
from cafe_db.models import Role, Session
from cafe_db.orders import OrderManager
from cafe_db.profiles import ProfileManager


class FakeClock:
    """callable clock the tests move forward by hand"""
    def __init__(self, start: datetime = datetime(2024, 5, 1, 9, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def add_user(db: DatabaseManager, login: str, role: Role, phone: str, password: str = "pw") -> Session:
    db.execute_update(
        "INSERT INTO users(login, password, phone_num, fav_items, role) VALUES(?,?,?,NULL,?);",
        (login, password, phone, role.value)
    )
    return Session(login=login, password=password, role=role)


@pytest.fixture
def db():
    database = DatabaseManager(":memory:", seed=False)
    yield database
    database.close()


@pytest.fixture
def accounts(db):
    return AccountManager(db)


@pytest.fixture
def catalog(db, accounts):
    return CatalogManager(db, accounts)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def orders(db, accounts, catalog, clock):
    return OrderManager(db, accounts, catalog, clock=clock)


@pytest.fixture
def profiles(db, accounts, catalog):
    return ProfileManager(db, accounts, catalog)


@pytest.fixture
def manager(db):
    return add_user(db, "boss", Role.MANAGER, "5550000001")


@pytest.fixture
def employee(db):
    return add_user(db, "barista", Role.EMPLOYEE, "5550000002")


@pytest.fixture
def alice(accounts):
    user = accounts.create_user("alice", "pw1", "5551234567")
    return accounts.open_session(user)


@pytest.fixture
def bob(accounts):
    user = accounts.create_user("bob", "pw2", "5557654321")
    return accounts.open_session(user)


@pytest.fixture
def menu(catalog, manager):
    catalog.create_item(manager, "Latte", "Drinks", Decimal("3.50"), "espresso and milk")
    catalog.create_item(manager, "Bagel", "Bakery", Decimal("2.00"))
    catalog.create_item(manager, "Croissant", "Bakery", Decimal("2.50"))
    return catalog


@pytest.fixture
def feed_input(monkeypatch):
    """replace input() with a scripted list of answers"""
    def feed(*answers):
        remaining = iter(answers)
        monkeypatch.setattr("builtins.input", lambda prompt="": next(remaining))
    return feed
