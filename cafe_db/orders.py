# order management: placing, editing, paying and tracking orders

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Iterable

from termcolor import cprint, colored

from cafe_db.accounts import AccountManager
from cafe_db.catalog import CatalogManager
from cafe_db.database import DatabaseManager
from cafe_db.errors import NotFoundError, ValidationError
from cafe_db.helpers import EXIT, choose_menu_option, color_money, parse_boolean_input, safe_int
from cafe_db.logger import log_event
from cafe_db.models import (
    MANAGER_ONLY, STAFF_ROLES, ItemState, ItemStatus, MenuItem, Order, Session,
)

RECENT_ORDER_LIMIT = 5
UNPAID_WINDOW_HOURS = 24
COMMENT_MAX_LEN = 129
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S.%f"

ORDER_COLUMNS = "order_id, login, paid, received_at, total"
RECENT_ORDERS_SQL = f"""--sql
    SELECT {ORDER_COLUMNS} FROM orders
    WHERE login=?
    ORDER BY received_at DESC, order_id DESC
    LIMIT ?;
"""
UNPAID_RECENT_SQL = f"""--sql
    SELECT {ORDER_COLUMNS} FROM orders
    WHERE paid=0 AND received_at >= ?
    ORDER BY received_at DESC, order_id DESC;
"""


class OrderManager:
    """manage orders, their items, payment and per-item status"""

    def __init__(self, db: DatabaseManager, account_manager: AccountManager,
                 catalog: CatalogManager, clock: Callable[[], datetime] = datetime.now):
        self.db = db
        self.account_manager = account_manager
        self.catalog = catalog
        self.clock = clock

    def _now(self) -> str:
        return self.clock().strftime(TIMESTAMP_FORMAT)

    # internal loading
    def _fetch_order(self, order_id: int) -> Order | None:
        row = self.db.query_one(f"SELECT {ORDER_COLUMNS} FROM orders WHERE order_id=?;", (order_id,))
        return Order.from_row(row) if row else None

    def _item_status(self, order_id: int, item_name: str) -> ItemStatus | None:
        row = self.db.query_one(
            """--sql
            SELECT order_id, item_name, last_updated, status, comments
            FROM item_status WHERE order_id=? AND item_name=?;
            """,
            (order_id, item_name)
        )
        return ItemStatus.from_row(row) if row else None

    def _price_of(self, item_name: str) -> Decimal:
        """current catalog price of an item"""
        item = self.catalog.get_item(item_name)
        if item is None:
            raise NotFoundError(f"'{item_name}' is not on our menu")
        return item.price

    def items_for_order(self, order_id: int) -> list[ItemStatus]:
        rows = self.db.query_rows(
            """--sql
            SELECT order_id, item_name, last_updated, status, comments
            FROM item_status WHERE order_id=?
            ORDER BY rowid;
            """,
            (order_id,)
        )
        return [ItemStatus.from_row(r) for r in rows]

    # order selection
    def get_order(self, session: Session, order_id: int) -> Order:
        """an order the session may see: its own, or any for employees / managers"""
        order = self._fetch_order(order_id)
        if order is None or (order.login != session.login and not session.is_staff):
            raise NotFoundError(f"order with id {order_id} does not exist")
        return order

    def _editable_order(self, session: Session, order_id: int, manager_override: bool = False) -> Order:
        """an order the session may edit: its own, or any for managers

        paid orders are frozen unless manager_override is set and the session is a manager
        """
        order = self._fetch_order(order_id)
        if order is None or (order.login != session.login and not session.is_manager):
            raise NotFoundError(f"order with id {order_id} does not exist")
        if order.paid and not (manager_override and session.is_manager):
            raise ValidationError(f"order with id {order_id} is already paid for, cannot update order")
        return order

    # lifecycle
    def place_order(self, session: Session, item_names: Iterable[str]) -> Order:
        """check out a basket: one order row plus one item status row per distinct item"""
        names = list(dict.fromkeys(item_names))
        if not names:
            raise ValidationError("your order list is empty!")
        total = sum((self._price_of(n) for n in names), Decimal("0.00"))
        now = self._now()
        with self.db.transaction():
            order_id = self.db.execute_insert(
                "INSERT INTO orders(login, paid, received_at, total) VALUES(?, 0, ?, ?);",
                (session.login, now, total)
            )
            for name in names:
                self.db.execute_update(
                    """--sql
                    INSERT INTO item_status(order_id, item_name, last_updated, status, comments)
                    VALUES(?, ?, ?, ?, NULL);
                    """,
                    (order_id, name, now, ItemState.NOT_STARTED.value)
                )
        log_event(f"order #{order_id} placed by {session.login}: {', '.join(names)} ({total})")
        return Order(id=order_id, login=session.login, paid=False, received_at=now, total=total)

    def add_item(self, session: Session, order_id: int, item_name: str) -> Order:
        """add one item to an unpaid order, raising its total by the current price"""
        self._editable_order(session, order_id)
        price = self._price_of(item_name)
        if self._item_status(order_id, item_name):
            raise ValidationError(f"{item_name} has already been added to your order")
        with self.db.transaction():
            self.db.execute_update(
                """--sql
                INSERT INTO item_status(order_id, item_name, last_updated, status, comments)
                VALUES(?, ?, ?, ?, NULL);
                """,
                (order_id, item_name, self._now(), ItemState.NOT_STARTED.value)
            )
            self.db.execute_update(
                "UPDATE orders SET total = ROUND(total + ?, 2) WHERE order_id=?;",
                (float(price), order_id)
            )
        log_event(f"{session.login} added {item_name} to order #{order_id}")
        return self._fetch_order(order_id)

    def remove_item(self, session: Session, order_id: int, item_name: str) -> Order | None:
        """remove one item; returns none when that emptied (and so deleted) the order"""
        self._editable_order(session, order_id, manager_override=True)
        if not self._item_status(order_id, item_name):
            raise NotFoundError(f"{item_name} is not part of order {order_id}")
        price = self._price_of(item_name)
        with self.db.transaction():
            self.db.execute_update(
                "DELETE FROM item_status WHERE order_id=? AND item_name=?;", (order_id, item_name)
            )
            self.db.execute_update(
                "UPDATE orders SET total = ROUND(total - ?, 2) WHERE order_id=?;",
                (float(price), order_id)
            )
            remaining = self.db.query_count("SELECT 1 FROM item_status WHERE order_id=?;", (order_id,))
            if remaining == 0:
                self.db.execute_update("DELETE FROM orders WHERE order_id=?;", (order_id,))
        log_event(f"{session.login} removed {item_name} from order #{order_id}")
        if remaining == 0:
            log_event(f"order #{order_id} cancelled due to all items being removed")
            return None
        return self._fetch_order(order_id)

    def cancel_order(self, session: Session, order_id: int):
        """hard delete an order and all of its item statuses"""
        self._editable_order(session, order_id, manager_override=True)
        with self.db.transaction():
            self.db.execute_update("DELETE FROM item_status WHERE order_id=?;", (order_id,))
            self.db.execute_update("DELETE FROM orders WHERE order_id=?;", (order_id,))
        log_event(f"{session.login} cancelled order #{order_id}")

    def add_comment(self, session: Session, order_id: int, item_name: str, text: str):
        """overwrite the comment on one item of an order"""
        self._editable_order(session, order_id)
        if len(text) > COMMENT_MAX_LEN:
            raise ValidationError(f"comment is too long! (max {COMMENT_MAX_LEN} characters)")
        if not self._item_status(order_id, item_name):
            raise NotFoundError(f"{item_name} is not part of order {order_id}")
        self.db.execute_update(
            "UPDATE item_status SET comments=? WHERE order_id=? AND item_name=?;",
            (text, order_id, item_name)
        )
        log_event(f"{session.login} commented on {item_name} in order #{order_id}")

    def set_paid(self, session: Session, order_id: int) -> bool:
        """flip an order from unpaid to paid; false if it already was"""
        self.account_manager.require_role(session, STAFF_ROLES, "mark orders as paid")
        order = self._fetch_order(order_id)
        if order is None:
            raise NotFoundError(f"order with id {order_id} does not exist")
        if order.paid:
            return False
        self.db.execute_update("UPDATE orders SET paid=1 WHERE order_id=?;", (order_id,))
        log_event(f"{session.login} set order #{order_id} to paid")
        return True

    def set_item_status(self, session: Session, order_id: int, item_name: str, state: ItemState | str):
        """overwrite the status and last-updated time of one item (any state may follow any other)"""
        self.account_manager.require_role(session, STAFF_ROLES, "change item status")
        try:
            state = ItemState(state)
        except ValueError:
            raise ValidationError(f"status should be one of: {', '.join(s.value for s in ItemState)}") from None
        if self._fetch_order(order_id) is None:
            raise NotFoundError(f"order with id {order_id} does not exist")
        if not self._item_status(order_id, item_name):
            raise NotFoundError(f"{item_name} is not part of order {order_id}")
        self.db.execute_update(
            "UPDATE item_status SET status=?, last_updated=? WHERE order_id=? AND item_name=?;",
            (state.value, self._now(), order_id, item_name)
        )
        log_event(f"{session.login} set {item_name} in order #{order_id} to {state.value}")

    # history
    def list_recent_orders(self, session: Session, limit: int = RECENT_ORDER_LIMIT) -> list[Order]:
        """the session user's most recent orders, newest first"""
        rows = self.db.query_rows(RECENT_ORDERS_SQL, (session.login, limit))
        return [Order.from_row(r) for r in rows]

    def _unpaid_cutoff(self, window_hours: int) -> str:
        return (self.clock() - timedelta(hours=window_hours)).strftime(TIMESTAMP_FORMAT)

    def list_unpaid_recent_orders(self, session: Session,
                                  window_hours: int = UNPAID_WINDOW_HOURS) -> list[Order]:
        """every customer's unpaid orders received within the trailing window (managers only)"""
        self.account_manager.require_role(session, MANAGER_ONLY, "view customers' unpaid orders")
        rows = self.db.query_rows(UNPAID_RECENT_SQL, (self._unpaid_cutoff(window_hours),))
        return [Order.from_row(r) for r in rows]

    # display
    def print_order(self, order: Order, show_owner: bool = False):
        """print order summary and its items"""
        owner = f" ({order.login})" if show_owner else ""
        cprint(f"order #{order.id}{owner}:", "green", attrs=["bold"])
        print("\treceived:", order.received_at)
        print("\ttotal:", color_money(order.total))
        print("\tpaid:", "yes" if order.paid else "no")
        for i, item in enumerate(self.items_for_order(order.id), start=1):
            print(f"\t{i}. {colored(item.item_name, 'yellow')}")
            print("\t   last updated:", item.last_updated)
            print("\t   status:", item.status.value)
            print("\t   comments:", item.comment or "none")

    # interactive
    @staticmethod
    def _prompt_order_id() -> int | None:
        raw = input("enter the order id: ").strip()
        oid = safe_int(raw, minimum=1)
        if oid is None:
            cprint("your input is invalid!", "red")
        return oid

    def _choose_item_in_order(self, order_id: int, verb: str) -> str | None:
        items = self.items_for_order(order_id)
        cprint(f"select an item to {verb} (blank to go back):", "cyan")
        idx = choose_menu_option([i.item_name for i in items])
        return None if idx is None else items[idx].item_name

    def prompt_place_order(self, session: Session):
        """build a basket from the menu, then confirm it as an order"""
        menu: list[MenuItem] = self.catalog.list_menu()
        if not menu:
            cprint("menu empty", "red"); return
        basket: list[MenuItem] = []
        while True:
            total = sum((m.price for m in basket), Decimal("0.00"))
            cprint("\nplace order", "green", attrs=["bold"])
            print("current total:", color_money(total))
            print("order:", ", ".join(m.name for m in basket) or "empty")
            for i, m in enumerate(menu, start=1):
                print(f"{colored(str(i), 'light_blue')}. {m.name} ({color_money(m.price)})")
            raw = input(f"item number to add, 'c' to confirm, {EXIT} to go back: ").strip()
            if raw == EXIT:
                return
            if raw.lower() == "c":
                if not basket:
                    cprint("your order list is empty!", "red"); continue
                ans = input(f"confirm order of {len(basket)} item(s) for {color_money(total)}? (y/N): ")
                if parse_boolean_input(ans):
                    order = self.place_order(session, [m.name for m in basket])
                    cprint(f"order #{order.id} confirmed!", "green")
                    return
                continue
            idx = safe_int(raw, minimum=1)
            if idx is None or idx > len(menu):
                cprint("unrecognized choice!", "red"); continue
            chosen = menu[idx - 1]
            if chosen in basket:
                cprint(f"{chosen.name} has already been added to your order", "yellow"); continue
            basket.append(chosen)
            cprint(f"{chosen.name} added!", "green")

    def prompt_update_order(self, session: Session):
        """remove / add / comment / cancel on one of your unpaid orders"""
        oid = self._prompt_order_id()
        if oid is None:
            return
        self._editable_order(session, oid)
        while True:
            order = self._fetch_order(oid)
            self.print_order(order)
            choice = choose_menu_option(["remove an item", "add an item", "add comment to an item", "cancel order"])
            if choice is None:
                return
            if choice == 0:
                item = self._choose_item_in_order(oid, "remove")
                if item and parse_boolean_input(input(f"confirm removal of {item}? (y/N): ")):
                    if self.remove_item(session, oid, item) is None:
                        cprint(f"cancelled order {oid} due to all items being removed", "yellow")
                        return
                    cprint(f"{item} has been removed from order {oid}", "green")
            elif choice == 1:
                menu = self.catalog.list_menu()
                cprint("select an item to add (blank to go back):", "cyan")
                idx = choose_menu_option([f"{m.name} ({color_money(m.price)})" for m in menu])
                if idx is None:
                    continue
                name = menu[idx].name
                if self._item_status(oid, name):
                    cprint(f"{name} has already been added to your order", "yellow"); continue
                self.add_item(session, oid, name)
                cprint(f"{name} added!", "green")
            elif choice == 2:
                item = self._choose_item_in_order(oid, "comment on")
                if item:
                    text = input(f"write your comment for {item}: ")
                    while len(text) > COMMENT_MAX_LEN:
                        cprint("comment is too long!", "red")
                        text = input(f"write your comment for {item}: ")
                    self.add_comment(session, oid, item, text)
                    cprint(f"comment to {item} has been added!", "green")
            elif choice == 3:
                if parse_boolean_input(input(f"confirm cancellation of order {oid}? (y/N): ")):
                    self.cancel_order(session, oid)
                    cprint(f"your order {oid} has been cancelled", "green")
                    return

    def prompt_staff_update(self, session: Session):
        """employee / manager view: mark paid, change item status on any order"""
        self.account_manager.require_role(session, STAFF_ROLES, "update customers' orders")
        oid = self._prompt_order_id()
        if oid is None:
            return
        self.get_order(session, oid)
        while True:
            order = self._fetch_order(oid)
            self.print_order(order, show_owner=True)
            choice = choose_menu_option(["change order status (unpaid -> paid)", "change item status"])
            if choice is None:
                return
            if choice == 0:
                if order.paid:
                    cprint("order is already paid for!", "yellow"); continue
                if parse_boolean_input(input("confirm changing order from unpaid to paid? (y/N): ")):
                    self.set_paid(session, oid)
                    cprint("order has been set to paid!", "green")
            else:
                item = self._choose_item_in_order(oid, "change the status of")
                if item is None:
                    continue
                states = list(ItemState)
                cprint(f"change status of {item} to which?", "cyan")
                idx = choose_menu_option([s.value for s in states])
                if idx is not None:
                    self.set_item_status(session, oid, item, states[idx])
                    cprint(f"{item} status set to {states[idx].value}", "green")

    def prompt_order_history(self, session: Session):
        """print your most recent orders"""
        cprint("your orders:", "green", attrs=["bold"])
        orders = self.list_recent_orders(session)
        if not orders:
            cprint("no orders found", "red"); return
        for order in orders:
            self.print_order(order)

    def prompt_unpaid_orders(self, session: Session):
        """print customers' unpaid orders from the last day"""
        orders = self.list_unpaid_recent_orders(session)
        cprint(f"customers' unpaid orders (within {UNPAID_WINDOW_HOURS} hours):", "green", attrs=["bold"])
        if not orders:
            cprint("no unpaid orders", "red"); return
        for order in orders:
            self.print_order(order, show_owner=True)
