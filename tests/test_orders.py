from decimal import Decimal

import pytest

from cafe_db.errors import NotFoundError, PermissionDenied, ValidationError
from cafe_db.models import ItemState


def order_exists(db, order_id):
    return db.query_count("SELECT 1 FROM orders WHERE order_id=?;", (order_id,)) > 0


def test_place_order(menu, orders, alice):
    order = orders.place_order(alice, ["Latte", "Bagel"])
    assert order.total == Decimal("5.50")
    assert not order.paid
    stored = orders.get_order(alice, order.id)
    assert stored.total == Decimal("5.50")
    items = orders.items_for_order(order.id)
    assert [i.item_name for i in items] == ["Latte", "Bagel"]
    assert all(i.status is ItemState.NOT_STARTED for i in items)
    assert all(i.comment is None for i in items)


def test_place_order_collapses_duplicates(menu, orders, alice):
    order = orders.place_order(alice, ["Latte", "Latte"])
    assert order.total == Decimal("3.50")
    assert len(orders.items_for_order(order.id)) == 1


def test_place_order_needs_known_items(menu, orders, alice, db):
    with pytest.raises(ValidationError):
        orders.place_order(alice, [])
    with pytest.raises(NotFoundError):
        orders.place_order(alice, ["Latte", "Scone"])
    assert db.query_count("SELECT 1 FROM orders;") == 0


def test_place_order_is_atomic(menu, orders, alice, db, monkeypatch):
    real_update = db.execute_update

    def failing_update(sql, params=()):
        if "item_status" in sql and params[1] == "Bagel":
            raise RuntimeError("connection lost")
        return real_update(sql, params)

    monkeypatch.setattr(db, "execute_update", failing_update)
    with pytest.raises(RuntimeError):
        orders.place_order(alice, ["Latte", "Bagel"])
    assert db.query_count("SELECT 1 FROM orders;") == 0
    assert db.query_count("SELECT 1 FROM item_status;") == 0


def test_remove_items_until_order_disappears(menu, orders, alice, db):
    order = orders.place_order(alice, ["Latte", "Bagel"])
    after = orders.remove_item(alice, order.id, "Bagel")
    assert after.total == Decimal("3.50")
    assert [i.item_name for i in orders.items_for_order(order.id)] == ["Latte"]

    assert orders.remove_item(alice, order.id, "Latte") is None
    assert not order_exists(db, order.id)
    assert db.query_count("SELECT 1 FROM item_status WHERE order_id=?;", (order.id,)) == 0


def test_remove_missing_item(menu, orders, alice):
    order = orders.place_order(alice, ["Latte"])
    with pytest.raises(NotFoundError):
        orders.remove_item(alice, order.id, "Bagel")


def test_add_item_uses_current_price(menu, orders, alice, manager):
    order = orders.place_order(alice, ["Latte"])
    menu.update_item(manager, "Bagel", price=Decimal("2.25"))
    after = orders.add_item(alice, order.id, "Bagel")
    assert after.total == Decimal("5.75")
    with pytest.raises(ValidationError):
        orders.add_item(alice, order.id, "Bagel")


def test_total_is_not_recomputed_on_price_change(menu, orders, alice, manager):
    order = orders.place_order(alice, ["Latte", "Bagel"])
    menu.update_item(manager, "Latte", price=Decimal("9.99"))
    assert orders.get_order(alice, order.id).total == Decimal("5.50")


def test_paid_orders_are_frozen_for_customers(menu, orders, alice, employee, manager):
    order = orders.place_order(alice, ["Latte", "Bagel"])
    assert orders.set_paid(employee, order.id)
    with pytest.raises(ValidationError):
        orders.add_item(alice, order.id, "Croissant")
    with pytest.raises(ValidationError):
        orders.remove_item(alice, order.id, "Bagel")
    with pytest.raises(ValidationError):
        orders.cancel_order(alice, order.id)
    with pytest.raises(ValidationError):
        orders.add_comment(alice, order.id, "Bagel", "warm please")
    # managers may still take items off a paid order
    after = orders.remove_item(manager, order.id, "Bagel")
    assert after.total == Decimal("3.50")


def test_set_paid_is_one_way_and_repeatable(menu, orders, alice, employee):
    order = orders.place_order(alice, ["Latte"])
    assert orders.set_paid(employee, order.id) is True
    assert orders.set_paid(employee, order.id) is False
    assert orders.get_order(alice, order.id).paid


def test_set_paid_is_staff_only(menu, orders, alice, employee):
    order = orders.place_order(alice, ["Latte"])
    with pytest.raises(PermissionDenied):
        orders.set_paid(alice, order.id)
    with pytest.raises(NotFoundError):
        orders.set_paid(employee, 999)


def test_set_item_status(menu, orders, alice, employee, clock):
    order = orders.place_order(alice, ["Latte", "Bagel"])
    orders.add_comment(alice, order.id, "Latte", "extra hot")
    before = orders.items_for_order(order.id)[0]
    clock.advance(minutes=3)
    orders.set_item_status(employee, order.id, "Latte", ItemState.FINISHED)
    latte = orders.items_for_order(order.id)[0]
    assert latte.status is ItemState.FINISHED
    assert latte.last_updated > before.last_updated
    assert latte.comment == "extra hot"
    # any state may follow any other, paid or not
    orders.set_paid(employee, order.id)
    orders.set_item_status(employee, order.id, "Latte", "Hasn't Started")
    assert orders.items_for_order(order.id)[0].status is ItemState.NOT_STARTED


def test_set_item_status_guards(menu, orders, alice, employee):
    order = orders.place_order(alice, ["Latte"])
    with pytest.raises(PermissionDenied):
        orders.set_item_status(alice, order.id, "Latte", ItemState.STARTED)
    with pytest.raises(NotFoundError):
        orders.set_item_status(employee, order.id, "Bagel", ItemState.STARTED)
    with pytest.raises(NotFoundError):
        orders.set_item_status(employee, 999, "Latte", ItemState.STARTED)
    with pytest.raises(ValidationError):
        orders.set_item_status(employee, order.id, "Latte", "Burnt")


def test_comment_length(menu, orders, alice):
    order = orders.place_order(alice, ["Latte"])
    with pytest.raises(ValidationError):
        orders.add_comment(alice, order.id, "Latte", "x" * 130)
    orders.add_comment(alice, order.id, "Latte", "x" * 129)
    assert orders.items_for_order(order.id)[0].comment == "x" * 129


def test_cancel_order(menu, orders, alice, db):
    order = orders.place_order(alice, ["Latte", "Bagel"])
    orders.cancel_order(alice, order.id)
    assert not order_exists(db, order.id)
    assert db.query_count("SELECT 1 FROM item_status;") == 0


def test_orders_are_owner_scoped(menu, orders, alice, bob, employee):
    order = orders.place_order(alice, ["Latte"])
    with pytest.raises(NotFoundError):
        orders.get_order(bob, order.id)
    with pytest.raises(NotFoundError):
        orders.add_item(bob, order.id, "Bagel")
    with pytest.raises(NotFoundError):
        orders.cancel_order(employee, order.id)
    assert orders.get_order(employee, order.id).login == "alice"


def test_list_recent_orders(menu, orders, alice, bob, clock):
    placed = []
    for _ in range(7):
        placed.append(orders.place_order(alice, ["Latte"]).id)
        clock.advance(minutes=10)
    orders.place_order(bob, ["Bagel"])
    recent = orders.list_recent_orders(alice)
    assert [o.id for o in recent] == list(reversed(placed))[:5]
    assert all(o.login == "alice" for o in recent)


def test_list_unpaid_recent_orders(menu, orders, alice, bob, manager, employee, clock):
    stale = orders.place_order(alice, ["Latte"])
    clock.advance(hours=30)
    paid = orders.place_order(bob, ["Bagel"])
    orders.set_paid(employee, paid.id)
    fresh_alice = orders.place_order(alice, ["Bagel"])
    clock.advance(minutes=5)
    fresh_bob = orders.place_order(bob, ["Croissant"])

    unpaid = orders.list_unpaid_recent_orders(manager)
    assert [o.id for o in unpaid] == [fresh_bob.id, fresh_alice.id]
    assert stale.id not in [o.id for o in unpaid]
    with pytest.raises(PermissionDenied):
        orders.list_unpaid_recent_orders(employee)


def test_manager_cancels_paid_order(menu, orders, alice, employee, manager, db):
    order = orders.place_order(alice, ["Latte"])
    orders.set_paid(employee, order.id)
    orders.cancel_order(manager, order.id)
    assert not order_exists(db, order.id)


def test_prompt_place_order_basket(menu, orders, alice, db, feed_input, capsys):
    # pick item 1 twice (second is a no-op), then item 2, confirm
    feed_input("1", "1", "2", "c", "y")
    orders.prompt_place_order(alice)
    assert "already been added" in capsys.readouterr().out
    [order] = orders.list_recent_orders(alice)
    assert len(orders.items_for_order(order.id)) == 2


def test_prompt_staff_update_marks_paid(menu, orders, alice, employee, feed_input):
    order = orders.place_order(alice, ["Latte"])
    feed_input(str(order.id), "1", "y", "")
    orders.prompt_staff_update(employee)
    assert orders.get_order(alice, order.id).paid


def test_prompt_update_order_duplicate_add_stays_in_menu(menu, orders, alice, feed_input, capsys):
    order = orders.place_order(alice, ["Latte"])
    # menu lists Bagel, Croissant, Latte; add Latte (already there), then Bagel
    feed_input(str(order.id), "2", "3", "2", "1", "")
    orders.prompt_update_order(alice)
    assert "already been added" in capsys.readouterr().out
    assert [i.item_name for i in orders.items_for_order(order.id)] == ["Latte", "Bagel"]
    assert orders.get_order(alice, order.id).total == Decimal("5.50")


def test_prompt_removing_last_item_cancels_order(menu, orders, alice, db, feed_input, capsys):
    order = orders.place_order(alice, ["Latte"])
    feed_input(str(order.id), "1", "1", "y")
    orders.prompt_update_order(alice)
    assert "cancelled order" in capsys.readouterr().out
    assert not order_exists(db, order.id)


def test_prompt_cancel_needs_confirmation(menu, orders, alice, db, feed_input):
    order = orders.place_order(alice, ["Latte", "Bagel"])
    feed_input(str(order.id), "4", "n", "")
    orders.prompt_update_order(alice)
    assert order_exists(db, order.id)

    feed_input(str(order.id), "4", "y")
    orders.prompt_update_order(alice)
    assert not order_exists(db, order.id)


def test_prompt_order_history_formats_orders(menu, orders, alice, capsys):
    orders.place_order(alice, ["Latte", "Bagel"])
    orders.prompt_order_history(alice)
    out = capsys.readouterr().out
    assert "$5.50" in out
    assert "paid: no" in out
