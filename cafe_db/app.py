# application wiring

import atexit
import os
import signal
import sqlite3
import sys

from termcolor import cprint
from colorama import just_fix_windows_console as enable_windows_ansi_interpretation

from cafe_db.accounts import AccountManager
from cafe_db.catalog import CatalogManager
from cafe_db.commands import Command, CommandParser
from cafe_db.database import DEFAULT_DB_PATH, DatabaseManager
from cafe_db.errors import DatabaseError
from cafe_db.logger import configure_logging, log_error, log_startup
from cafe_db.models import ALL_ROLES, MANAGER_ONLY, STAFF_ROLES
from cafe_db.orders import OrderManager
from cafe_db.profiles import ProfileManager


class Application:
    """bootstrap objects & build the command table"""
    def __init__(self, db: DatabaseManager):
        self.db = db
        self.account_manager = AccountManager(db)
        self.catalog = CatalogManager(db, self.account_manager)
        self.order_manager = OrderManager(db, self.account_manager, self.catalog)
        self.profile_manager = ProfileManager(db, self.account_manager, self.catalog)
        self.parser = CommandParser(self.account_manager)

        catalog, orders, profiles = self.catalog, self.order_manager, self.profile_manager

        # menu commands
        self.parser.commands += [
            Command("menu", catalog.show_menu, "show the menu", None),
            Command("menu search name", catalog.prompt_search_name, "find an item by name", None),
            Command("menu search type", catalog.prompt_search_type, "list items of a type", None),
            Command("menu add", catalog.prompt_add_item, "add a menu item", MANAGER_ONLY),
            Command("menu update", catalog.prompt_update_item, "update a menu item", MANAGER_ONLY),
            Command("menu retype", catalog.prompt_change_type, "rename an item type everywhere", MANAGER_ONLY),
            Command("menu delete", catalog.prompt_delete_item, "delete a menu item", MANAGER_ONLY),
        ]

        # order commands
        self.parser.commands += [
            Command("order place", orders.prompt_place_order, "place an order", ALL_ROLES),
            Command("order update", orders.prompt_update_order, "edit one of your unpaid orders", ALL_ROLES),
            Command("order history", orders.prompt_order_history, "your recent orders", ALL_ROLES),
            Command("order staff", orders.prompt_staff_update, "mark paid / change item status", STAFF_ROLES),
            Command("order unpaid", orders.prompt_unpaid_orders, "customers' unpaid orders (24h)", MANAGER_ONLY),
        ]

        # profile commands
        self.parser.commands += [
            Command("profile update", profiles.prompt_update_self, "update your profile", ALL_ROLES),
            Command("profile user", profiles.prompt_update_other, "update another user's profile", MANAGER_ONLY),
        ]

    def run(self, *args: str):
        """greet, run argv as a first command, then hand over to the repl"""
        cprint("""
welcome to the café ☕
order, track and manage from the command line
    """, "green", attrs=["bold"])

        print("""for more information, type 'help' or 'h' at any time.
to exit the program, type 'quit'.""")

        if args:
            self.parser.parse_and_execute(" ".join(args))
        self.parser.start_repl()


def open_database(path: str) -> DatabaseManager:
    """connect or die: a startup connection failure is fatal"""
    try:
        return DatabaseManager(path)
    except (sqlite3.Error, DatabaseError) as e:
        log_error(f"unable to open database {path}", e)
        cprint(f"error - unable to open database: {e}", "red")
        sys.exit(1)


# entry point
def main():
    """entrypoint wrapper"""
    enable_windows_ansi_interpretation()
    signal.signal(signal.SIGINT, SignalHandler.sigint)
    db_path = os.environ.get("CAFE_DB", DEFAULT_DB_PATH)
    log_path = configure_logging()
    log_startup(db_path, log_path)
    db = open_database(db_path)
    atexit.register(db.close)
    Application(db).run(*sys.argv[1:])


# signal handler
class SignalHandler:
    """custom ctrl+c handler to nag user politely"""
    @staticmethod
    def sigint(_, __):
        """handle ctrl+c"""
        cprint("\nnext time, use quit!", "yellow")
        sys.exit(0)


if __name__ == "__main__":
    main()
