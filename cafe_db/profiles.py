# profile maintenance: self service for everyone, any account for managers

from termcolor import cprint, colored

from cafe_db.accounts import AccountManager
from cafe_db.catalog import CatalogManager
from cafe_db.database import DatabaseManager
from cafe_db.errors import NotFoundError, PermissionDenied, ValidationError
from cafe_db.helpers import EXIT, choose_menu_option
from cafe_db.logger import log_event
from cafe_db.models import MANAGER_ONLY, Role, Session, User

FAVORITES_MAX_LEN = 400
FAVORITES_SEPARATOR = ", "


class ProfileManager:
    """update login, password, phone, role and favourite items"""

    def __init__(self, db: DatabaseManager, account_manager: AccountManager, catalog: CatalogManager):
        self.db = db
        self.account_manager = account_manager
        self.catalog = catalog

    # favourites
    def serialize_favorites(self, items: list[str]) -> str:
        """validate a replacement favourites list and join it for storage"""
        if not items:
            raise ValidationError("no favorite items given")
        for item in items:
            if not self.catalog.item_exists(item):
                raise ValidationError(f"'{item}' is not on our item menu!")
        joined = FAVORITES_SEPARATOR.join(dict.fromkeys(items))
        if len(joined) > FAVORITES_MAX_LEN:
            raise ValidationError(f"list of item names too long! (max {FAVORITES_MAX_LEN} characters)")
        return joined

    def _check_self_or_manager(self, session: Session, login: str):
        if login != session.login:
            self.account_manager.require_role(session, MANAGER_ONLY, "edit another user's profile")
        if not self.account_manager.user_exists(login):
            raise NotFoundError(f"user '{login}' does not exist!")

    def set_favorites(self, session: Session, login: str, items: list[str]):
        """replace the whole favourites list"""
        self._check_self_or_manager(session, login)
        joined = self.serialize_favorites(items)
        self.db.execute_update("UPDATE users SET fav_items=? WHERE login=?;", (joined, login))
        log_event(f"{session.login} set favorites of {login}")

    def clear_favorites(self, session: Session, login: str):
        """remove the favourites list entirely"""
        self._check_self_or_manager(session, login)
        self.db.execute_update("UPDATE users SET fav_items=NULL WHERE login=?;", (login,))
        log_event(f"{session.login} cleared favorites of {login}")

    # updates
    def _apply_updates(self, session: Session, target: str, *, login: str | None = None,
                       phone: str | None = None, password: str | None = None,
                       role: Role | str | None = None, favorites: list[str] | None = None) -> User:
        """validate every given field, then write them; none leaves a field unchanged"""
        if login is not None:
            self.account_manager.validate_login(login, exclude_login=target)
        if phone is not None:
            self.account_manager.validate_phone(phone, exclude_login=target)
        if password is not None:
            self.account_manager.validate_password(password)
        if role is not None:
            try:
                role = Role(role)
            except ValueError:
                raise ValidationError("type should be Manager, Employee, or Customer") from None
        fav_items = self.serialize_favorites(favorites) if favorites is not None else None

        updates = [
            ("phone_num", phone),
            ("password", password),
            ("role", role.value if role is not None else None),
            ("fav_items", fav_items),
            # login last, the other updates are keyed on the old one
            ("login", login),
        ]
        with self.db.transaction():
            for column, value in updates:
                if value is None:
                    continue
                self.db.execute_update(f"UPDATE users SET {column}=? WHERE login=?;", (value, target))
        changed = [c for c, v in updates if v is not None]
        if changed:
            log_event(f"{session.login} updated {', '.join(changed)} of {target}")
        return self.account_manager.get_user(login if login is not None else target)

    def update_self(self, session: Session, *, phone: str | None = None, password: str | None = None,
                    favorites: list[str] | None = None, login: str | None = None,
                    role: Role | str | None = None) -> User:
        """self service update; only managers may change their own login or role"""
        if (login is not None or role is not None) and not session.is_manager:
            raise PermissionDenied("only managers may change a login or role")
        return self._apply_updates(session, session.login, login=login, phone=phone,
                                   password=password, role=role, favorites=favorites)

    def update_other(self, session: Session, target_login: str, *, login: str | None = None,
                     phone: str | None = None, password: str | None = None,
                     role: Role | str | None = None, favorites: list[str] | None = None) -> User:
        """manager edits another account"""
        self.account_manager.require_role(session, MANAGER_ONLY, "edit another user's profile")
        if target_login == session.login:
            raise ValidationError("you cannot choose yourself!")
        if not self.account_manager.user_exists(target_login):
            raise NotFoundError("user does not exist!")
        return self._apply_updates(session, target_login, login=login, phone=phone,
                                   password=password, role=role, favorites=favorites)

    # interactive
    def _collect_changes(self, target: str, manager_fields: bool, on_favorites) -> dict:
        """menu of fields; each answer is validated now and written when the menu closes"""
        changes: dict = {}
        options = [
            ("phone", "update phone number"),
            ("password", "update password - if your password changes you will need to log in again"),
            ("favorites", "update favorite items"),
        ]
        if manager_fields:
            options = [("login", "update login - if your login changes you will need to log in again")] + options
            options.append(("role", "update type - if your type changes you will need to log in again"))
        while True:
            cprint("\nupdate profile", "green", attrs=["bold"])
            idx = choose_menu_option([label for _, label in options])
            if idx is None:
                return changes
            field = options[idx][0]
            if field == "favorites":
                on_favorites()
                continue
            value = input(f"enter new {field}, or enter {EXIT} to quit: ").strip()
            if value == EXIT:
                continue
            try:
                if field == "login":
                    self.account_manager.validate_login(value, exclude_login=target)
                elif field == "phone":
                    self.account_manager.validate_phone(value, exclude_login=target)
                elif field == "password":
                    self.account_manager.validate_password(value)
                elif field == "role":
                    Role(value)
            except ValueError:
                cprint("type should be Manager, Employee, or Customer", "red"); continue
            except ValidationError as e:
                cprint(str(e), "red"); continue
            changes[field] = value

    def prompt_update_self(self, session: Session):
        """interactive self service update"""
        changes = self._collect_changes(
            session.login, session.is_manager,
            lambda: self.prompt_favorites(session, session.login)
        )
        if changes:
            self.update_self(session, **changes)
            cprint("profile updated", "green")

    def prompt_update_other(self, session: Session):
        """interactive manager update of another account"""
        self.account_manager.require_role(session, MANAGER_ONLY, "edit another user's profile")
        while True:
            target = input(f"login of the user to edit, or {EXIT} to quit: ").strip()
            if target == EXIT:
                return
            if target == session.login:
                cprint("you cannot choose yourself! use 'profile update' instead", "red")
            elif not self.account_manager.user_exists(target):
                cprint("user does not exist!", "red")
            else:
                break
        changes = self._collect_changes(target, True, lambda: self.prompt_favorites(session, target))
        if changes:
            user = self.update_other(session, target, **changes)
            cprint(f"profile of {colored(user.login, 'yellow')} updated", "green")

    def prompt_favorites(self, session: Session, login: str):
        """replace or clear a favourites list"""
        cprint("favorite items", "green", attrs=["bold"])
        choice = choose_menu_option(["set list of favorite items (replaces the current list)",
                                     "remove list of favorite items"])
        if choice is None:
            return
        if choice == 1:
            self.clear_favorites(session, login)
            cprint("favorites cleared", "green")
            return
        items: list[str] = []
        while True:
            item = input(f"enter an item to put on the list, or {EXIT} to stop adding: ").strip()
            if item == EXIT:
                break
            if not self.catalog.item_exists(item):
                cprint("that item is not on our item menu!", "red"); continue
            if len(FAVORITES_SEPARATOR.join(items + [item])) > FAVORITES_MAX_LEN:
                cprint("list of item names too long!", "red"); continue
            if item not in items:
                items.append(item)
        if not items:
            cprint("no items given, favorites unchanged", "yellow"); return
        self.set_favorites(session, login, items)
        cprint(f"favorites set to {FAVORITES_SEPARATOR.join(items)}", "green")
