from decimal import Decimal

import pytest

from cafe_db.errors import NotFoundError, PermissionDenied, ValidationError
from cafe_db.models import Role


def test_update_own_phone(profiles, accounts, alice, bob):
    user = profiles.update_self(alice, phone="5559999999")
    assert user.phone_num == "5559999999"
    # keeping your own number is not a clash
    profiles.update_self(alice, phone="5559999999")
    with pytest.raises(ValidationError):
        profiles.update_self(alice, phone="5557654321")
    assert accounts.get_user("alice").phone_num == "5559999999"


def test_customers_cannot_change_login_or_role(profiles, alice):
    with pytest.raises(PermissionDenied):
        profiles.update_self(alice, login="alicia")
    with pytest.raises(PermissionDenied):
        profiles.update_self(alice, role=Role.MANAGER)


def test_password_change_invalidates_session(profiles, accounts, alice):
    profiles.update_self(alice, phone="5550001111")
    assert accounts.session_is_valid(alice)
    profiles.update_self(alice, password="fresh")
    assert not accounts.session_is_valid(alice)
    assert accounts.authenticate("alice", "fresh") is not None


def test_update_other_guards(profiles, manager, employee, alice):
    with pytest.raises(ValidationError, match="yourself"):
        profiles.update_other(manager, "boss", phone="1")
    with pytest.raises(NotFoundError):
        profiles.update_other(manager, "ghost", phone="1")
    with pytest.raises(PermissionDenied):
        profiles.update_other(employee, "alice", phone="1")


def test_manager_promotes_customer(profiles, accounts, manager, alice):
    user = profiles.update_other(manager, "alice", role="Employee")
    assert user.role is Role.EMPLOYEE
    assert not accounts.session_is_valid(alice)
    with pytest.raises(ValidationError):
        profiles.update_other(manager, "alice", role="Owner")


def test_login_rename_carries_orders(menu, profiles, orders, accounts, manager, alice, db):
    order = orders.place_order(alice, ["Latte"])
    user = profiles.update_other(manager, "alice", login="alicia", phone="5551112222")
    assert user.login == "alicia"
    assert user.phone_num == "5551112222"
    assert not accounts.user_exists("alice")
    row = db.query_one("SELECT login FROM orders WHERE order_id=?;", (order.id,))
    assert row["login"] == "alicia"


def test_update_is_all_or_nothing(profiles, accounts, manager, alice, bob):
    with pytest.raises(ValidationError):
        profiles.update_other(manager, "alice", password="new", phone="5557654321")
    assert accounts.authenticate("alice", "pw1") is not None


def test_favorites(menu, profiles, accounts, alice):
    profiles.set_favorites(alice, "alice", ["Latte", "Bagel", "Latte"])
    assert accounts.get_user("alice").favorites == ["Latte", "Bagel"]
    profiles.clear_favorites(alice, "alice")
    assert accounts.get_user("alice").favorites == []


def test_favorites_validation(menu, profiles, alice, bob):
    with pytest.raises(ValidationError):
        profiles.set_favorites(alice, "alice", ["Scone"])
    with pytest.raises(ValidationError):
        profiles.set_favorites(alice, "alice", [])
    with pytest.raises(PermissionDenied):
        profiles.set_favorites(alice, "bob", ["Latte"])


def test_favorites_length_limit(catalog, profiles, manager, alice):
    names = [chr(ord("a") + i) * 50 for i in range(9)]
    for name in names:
        catalog.create_item(manager, name, "Bulk", Decimal("1.00"))
    with pytest.raises(ValidationError, match="too long"):
        profiles.set_favorites(alice, "alice", names)
    profiles.set_favorites(alice, "alice", names[:7])


def test_manager_sets_customer_favorites(menu, profiles, accounts, manager, alice):
    profiles.set_favorites(manager, "alice", ["Croissant"])
    assert accounts.get_user("alice").favorites == ["Croissant"]


def test_prompt_update_self(profiles, accounts, alice, feed_input):
    # option 1 is the phone number for customers, blank closes the menu
    feed_input("1", "5552223333", "")
    profiles.prompt_update_self(alice)
    assert accounts.get_user("alice").phone_num == "5552223333"


def test_prompt_update_self_rejects_taken_phone(profiles, accounts, alice, bob, feed_input, capsys):
    feed_input("1", "5557654321", "")
    profiles.prompt_update_self(alice)
    assert "same phone number" in capsys.readouterr().out
    assert accounts.get_user("alice").phone_num == "5551234567"


def test_prompt_update_other_rejects_self(profiles, accounts, manager, alice, feed_input, capsys):
    # manager menu: login, phone, password, favorites, type
    feed_input("boss", "alice", "2", "5550009999", "")
    profiles.prompt_update_other(manager)
    assert "you cannot choose yourself" in capsys.readouterr().out
    assert accounts.get_user("alice").phone_num == "5550009999"


def test_prompt_favorites_replace_and_clear(menu, profiles, accounts, alice, feed_input, capsys):
    feed_input("1", "Latte", "Scone", "Bagel", "EXIT")
    profiles.prompt_favorites(alice, "alice")
    assert "not on our item menu" in capsys.readouterr().out
    assert accounts.get_user("alice").favorites == ["Latte", "Bagel"]

    feed_input("1", "Croissant", "EXIT")
    profiles.prompt_favorites(alice, "alice")
    assert accounts.get_user("alice").favorites == ["Croissant"]

    feed_input("2")
    profiles.prompt_favorites(alice, "alice")
    assert accounts.get_user("alice").favorites == []
