# menu catalog: manager-only item maintenance plus search for everyone

from decimal import Decimal

from termcolor import cprint, colored

from cafe_db.accounts import AccountManager
from cafe_db.database import DatabaseManager
from cafe_db.errors import NotFoundError, ValidationError
from cafe_db.helpers import (
    CONFIRM, EXIT, NONE, SKIP, choose_menu_option, color_money, fits_in_cents,
    has_sub_cent_digits, price_alternatives, safe_decimal,
)
from cafe_db.logger import log_event
from cafe_db.models import MANAGER_ONLY, MenuItem, Session

NAME_MAX_LEN = 50
TYPE_MAX_LEN = 20
DESCRIPTION_MAX_LEN = 400
IMAGE_URL_MAX_LEN = 256

ITEM_COLUMNS = "item_name, type, price, description, image_url"


class CatalogManager:
    """menu item create / search / update / delete"""

    def __init__(self, db: DatabaseManager, account_manager: AccountManager):
        self.db = db
        self.account_manager = account_manager

    # queries
    def list_menu(self) -> list[MenuItem]:
        rows = self.db.query_rows(f"SELECT {ITEM_COLUMNS} FROM menu ORDER BY type, item_name;")
        return [MenuItem.from_row(r) for r in rows]

    def get_item(self, name: str) -> MenuItem | None:
        """exact (case sensitive) lookup by item name"""
        row = self.db.query_one(f"SELECT {ITEM_COLUMNS} FROM menu WHERE item_name=?;", (name,))
        return MenuItem.from_row(row) if row else None

    def item_exists(self, name: str) -> bool:
        return self.db.query_count("SELECT 1 FROM menu WHERE item_name=?;", (name,)) > 0

    def type_exists(self, type: str) -> bool:
        return self.db.query_count("SELECT 1 FROM menu WHERE type=?;", (type,)) > 0

    def search_by_name(self, name: str) -> list[MenuItem]:
        if len(name) > NAME_MAX_LEN:
            raise ValidationError(f"item name should not be over {NAME_MAX_LEN} characters")
        rows = self.db.query_rows(f"SELECT {ITEM_COLUMNS} FROM menu WHERE item_name=?;", (name,))
        return [MenuItem.from_row(r) for r in rows]

    def search_by_type(self, type: str) -> list[MenuItem]:
        if len(type) > TYPE_MAX_LEN:
            raise ValidationError(f"item type should not be over {TYPE_MAX_LEN} characters")
        rows = self.db.query_rows(
            f"SELECT {ITEM_COLUMNS} FROM menu WHERE type=? ORDER BY item_name;", (type,)
        )
        return [MenuItem.from_row(r) for r in rows]

    # validation
    def validate_name(self, name: str, current_name: str | None = None):
        if not (1 <= len(name) <= NAME_MAX_LEN):
            raise ValidationError(f"item name must not be greater than {NAME_MAX_LEN} characters and not empty")
        if "," in name:
            raise ValidationError("item name must not contain a comma")
        if name != current_name and self.item_exists(name):
            raise ValidationError("item name should be unique, there already exists an item with the same name in the menu.")

    @staticmethod
    def validate_type(type: str):
        if not (1 <= len(type) <= TYPE_MAX_LEN):
            raise ValidationError(f"item type must not be greater than {TYPE_MAX_LEN} characters and not empty")

    @staticmethod
    def validate_price(price: Decimal, allow_zero_price: bool = False):
        if not fits_in_cents(price):
            raise ValidationError("item price is too large")
        if price < 0:
            raise ValidationError("item price must not be negative")
        if has_sub_cent_digits(price):
            truncated, rounded = price_alternatives(price)
            raise ValidationError(
                f"price has more than two decimal places; use {truncated} (truncated) or {rounded} (rounded)"
            )
        if price == 0 and not allow_zero_price:
            raise ValidationError("a price of 0 must be confirmed")

    @staticmethod
    def validate_description(description: str):
        if len(description) > DESCRIPTION_MAX_LEN:
            raise ValidationError(f"description must be at most {DESCRIPTION_MAX_LEN} characters")

    @staticmethod
    def validate_image_url(image_url: str):
        if len(image_url) > IMAGE_URL_MAX_LEN:
            raise ValidationError(f"image URL must be at most {IMAGE_URL_MAX_LEN} characters")

    # mutations
    def create_item(self, session: Session, name: str, type: str, price: Decimal,
                    description: str = "", image_url: str = "",
                    allow_zero_price: bool = False) -> MenuItem:
        """add a menu item (manager only)"""
        self.account_manager.require_role(session, MANAGER_ONLY, "add menu items")
        self.validate_name(name)
        self.validate_type(type)
        self.validate_price(price, allow_zero_price)
        self.validate_description(description)
        self.validate_image_url(image_url)
        self.db.execute_update(
            f"INSERT INTO menu({ITEM_COLUMNS}) VALUES(?,?,?,?,?);",
            (name, type, price, description, image_url)
        )
        log_event(f"{session.login} added menu item '{name}' at {price}")
        return MenuItem(name, type, price, description, image_url)

    def update_item(self, session: Session, name: str, *, new_name: str | None = None,
                    type: str | None = None, price: Decimal | None = None,
                    description: str | None = None, image_url: str | None = None,
                    allow_zero_price: bool = False) -> MenuItem:
        """update any subset of an item's fields; none leaves a field unchanged"""
        self.account_manager.require_role(session, MANAGER_ONLY, "update menu items")
        if not self.item_exists(name):
            raise NotFoundError(f"item '{name}' does not exist (item names are case sensitive)")
        if new_name is not None:
            self.validate_name(new_name, current_name=name)
        if type is not None:
            self.validate_type(type)
        if price is not None:
            self.validate_price(price, allow_zero_price)
        if description is not None:
            self.validate_description(description)
        if image_url is not None:
            self.validate_image_url(image_url)

        updates = [
            ("type", type),
            ("price", price),
            ("description", description),
            ("image_url", image_url),
            # renamed last so the WHERE on the old name holds for the fields above
            ("item_name", new_name),
        ]
        with self.db.transaction():
            for column, value in updates:
                if value is None:
                    continue
                self.db.execute_update(
                    f"UPDATE menu SET {column}=? WHERE item_name=?;", (value, name)
                )
        final_name = new_name if new_name is not None else name
        log_event(f"{session.login} updated menu item '{name}'"
                  + (f" (renamed to '{new_name}')" if new_name not in (None, name) else ""))
        return self.get_item(final_name)

    def change_all_of_type(self, session: Session, old_type: str, new_type: str) -> int:
        """rename a type across every item that has it"""
        self.account_manager.require_role(session, MANAGER_ONLY, "change item types")
        if not self.type_exists(old_type):
            raise NotFoundError(f"item type '{old_type}' does not exist")
        self.validate_type(new_type)
        changed = self.db.execute_update("UPDATE menu SET type=? WHERE type=?;", (new_type, old_type))
        log_event(f"{session.login} renamed type '{old_type}' -> '{new_type}' ({changed} items)")
        return changed

    def delete_item(self, session: Session, name: str):
        """delete a menu item; items still referenced by orders are refused by the db"""
        self.account_manager.require_role(session, MANAGER_ONLY, "delete menu items")
        if not self.item_exists(name):
            raise NotFoundError(f"item '{name}' not found")
        self.db.execute_update("DELETE FROM menu WHERE item_name=?;", (name,))
        log_event(f"{session.login} deleted menu item '{name}'")

    # display
    @staticmethod
    def print_item(item: MenuItem):
        print("-" * 60)
        print("item name:", colored(item.name, "yellow", attrs=["bold"]))
        print("type:", item.type)
        print("price:", color_money(item.price))
        print("description:", item.description or "none")
        print("image url:", item.image_url or "none")

    def show_menu(self):
        """print menu grouped by item type"""
        cprint("the café menu", None, attrs=["bold"])
        items = self.list_menu()
        if not items:
            cprint("menu empty", "red"); return
        current_type = None
        for item in items:
            if item.type != current_type:
                current_type = item.type
                cprint(f"\n{current_type}:", "green", attrs=["bold"])
            cprint(f"{item.name}: ${item.price:.2f}", "green")

    def _print_results(self, items: list[MenuItem]):
        if not items:
            cprint("no matching items", "red"); return
        for item in items:
            self.print_item(item)

    # interactive
    @staticmethod
    def _prompt_text(label: str, max_len: int, min_len: int = 1,
                     allow_skip: bool = False, allow_none: bool = False):
        """ask for a bounded string; returns None on EXIT, SKIP when skipped"""
        hints = [f"{min_len}-{max_len} characters" if min_len else f"at most {max_len} characters"]
        if allow_skip:
            hints.append(f"{SKIP} keeps the old value")
        if allow_none:
            hints.append(f"{NONE} or blank for none")
        hints.append(f"{EXIT} to cancel")
        while True:
            raw = input(f"{label} ({', '.join(hints)}): ").strip()
            if raw == EXIT:
                return None
            if allow_skip and raw == SKIP:
                return SKIP
            if allow_none and raw in ("", NONE):
                return ""
            if min_len <= len(raw) <= max_len:
                return raw
            cprint(f"{label} must be {hints[0]}", "red")

    @staticmethod
    def _choose_price_fix(price: Decimal) -> Decimal:
        truncated, rounded = price_alternatives(price)
        cprint("your price has more than two decimal places, truncate or round it?", "yellow")
        while True:
            idx = choose_menu_option([f"truncate ({price} --> {truncated})", f"round ({price} --> {rounded})"])
            if idx is not None:
                return (truncated, rounded)[idx]

    def _prompt_price(self, allow_skip: bool = False):
        """ask for a price; returns None on EXIT / unconfirmed zero, SKIP when skipped"""
        hint = f", {SKIP} keeps the old price" if allow_skip else ""
        while True:
            raw = input(f"price ({EXIT} to cancel{hint}): ").strip()
            if raw == EXIT:
                return None
            if allow_skip and raw == SKIP:
                return SKIP
            price = safe_decimal(raw)
            if price is None:
                cprint("please enter a numerical price", "red"); continue
            if price < 0:
                cprint("item price must not be negative", "red"); continue
            if has_sub_cent_digits(price):
                price = self._choose_price_fix(price)
            if price == 0:
                cprint(f"***WARNING*** this item will cost 0, type {CONFIRM} to proceed", "yellow")
                if input("> ").strip() != CONFIRM:
                    return None
            return price

    def prompt_search_name(self, name: str | None = None):
        """search menu by exact item name"""
        if name is None:
            name = input("item name to search: ").strip()
        self._print_results(self.search_by_name(name))

    def prompt_search_type(self, type: str | None = None):
        """search menu by exact item type"""
        if type is None:
            type = input("item type to search: ").strip()
        self._print_results(self.search_by_type(type))

    def prompt_add_item(self, session: Session):
        """interactive item creation"""
        self.account_manager.require_role(session, MANAGER_ONLY, "add menu items")
        while True:
            name = self._prompt_text("item name", NAME_MAX_LEN)
            if name is None:
                return
            try:
                self.validate_name(name)
                break
            except ValidationError as e:
                cprint(str(e), "red")
        type = self._prompt_text("item type", TYPE_MAX_LEN)
        if type is None:
            return
        price = self._prompt_price()
        if price is None:
            return
        description = self._prompt_text("description", DESCRIPTION_MAX_LEN, min_len=0, allow_none=True)
        if description is None:
            return
        image_url = self._prompt_text("image url", IMAGE_URL_MAX_LEN, min_len=0, allow_none=True)
        if image_url is None:
            return
        item = self.create_item(session, name, type, price, description, image_url, allow_zero_price=True)
        cprint(f"added {item.name} at {color_money(item.price)}", "green")

    def prompt_update_item(self, session: Session):
        """interactive field-by-field item update"""
        self.account_manager.require_role(session, MANAGER_ONLY, "update menu items")
        while True:
            name = input(f"name of item to update ({EXIT} to cancel): ").strip()
            if name == EXIT:
                return
            if self.item_exists(name):
                break
            cprint("item with that name does not exist. item names are case sensitive.", "red")

        while True:
            new_name = self._prompt_text("new item name", NAME_MAX_LEN, allow_skip=True)
            if new_name is None:
                return
            if new_name == SKIP:
                break
            try:
                self.validate_name(new_name, current_name=name)
                break
            except ValidationError as e:
                cprint(str(e), "red")
        type = self._prompt_text("new item type", TYPE_MAX_LEN, allow_skip=True)
        if type is None:
            return
        price = self._prompt_price(allow_skip=True)
        if price is None:
            return
        description = self._prompt_text("new description", DESCRIPTION_MAX_LEN, min_len=0,
                                         allow_skip=True, allow_none=True)
        if description is None:
            return
        image_url = self._prompt_text("new image url", IMAGE_URL_MAX_LEN, min_len=0,
                                      allow_skip=True, allow_none=True)
        if image_url is None:
            return

        def unchanged_if_skipped(value):
            return None if value == SKIP else value

        item = self.update_item(
            session, name,
            new_name=unchanged_if_skipped(new_name),
            type=unchanged_if_skipped(type),
            price=unchanged_if_skipped(price),
            description=unchanged_if_skipped(description),
            image_url=unchanged_if_skipped(image_url),
            allow_zero_price=True,
        )
        cprint(f"updated {item.name}", "green")

    def prompt_change_type(self, session: Session):
        """rename a type across all items"""
        self.account_manager.require_role(session, MANAGER_ONLY, "change item types")
        while True:
            old_type = input(f"item type to change ({EXIT} to cancel): ").strip()
            if old_type == EXIT:
                return
            if self.type_exists(old_type):
                break
            cprint("item type does not exist", "red")
        new_type = self._prompt_text("new item type", TYPE_MAX_LEN)
        if new_type is None:
            return
        changed = self.change_all_of_type(session, old_type, new_type)
        cprint(f"{changed} item(s) moved from {old_type} to {new_type}", "green")

    def prompt_delete_item(self, session: Session, name: str | None = None):
        """delete a menu item"""
        self.account_manager.require_role(session, MANAGER_ONLY, "delete menu items")
        while name is None:
            raw = input(f"name of item to delete ({EXIT} to cancel): ").strip()
            if raw == EXIT:
                return
            if self.item_exists(raw):
                name = raw
            else:
                cprint("item name not found", "red")
        self.delete_item(session, name)
        cprint(f"deleted {name}", "green")
