# accounts/auth

from termcolor import cprint, colored

from cafe_db.database import DatabaseManager
from cafe_db.errors import NotFoundError, PermissionDenied, ValidationError
from cafe_db.logger import log_event, log_warning
from cafe_db.models import Role, Session, User

LOGIN_MAX_LEN = 50
PASSWORD_MAX_LEN = 50
PHONE_MAX_LEN = 16


class AccountManager:
    """user accounts, credential checks and session validation (plain text passwords, as the schema stores them)"""

    def __init__(self, db: DatabaseManager):
        self.db = db

    # lookups
    def get_user(self, login: str) -> User | None:
        row = self.db.query_one(
            "SELECT login, password, phone_num, fav_items, role FROM users WHERE login=?;",
            (login,)
        )
        return User.from_row(row) if row else None

    def user_exists(self, login: str) -> bool:
        """check if login exists"""
        return self.db.query_count("SELECT 1 FROM users WHERE login=?;", (login,)) > 0

    def phone_taken(self, phone: str, exclude_login: str | None = None) -> bool:
        """true if another user already has this phone number"""
        return self.db.query_count(
            "SELECT 1 FROM users WHERE phone_num=? AND login IS NOT ?;",
            (phone, exclude_login)
        ) > 0

    def role_of(self, login: str) -> Role:
        """read the single role column of a user"""
        row = self.db.query_one("SELECT role FROM users WHERE login=?;", (login,))
        if row is None:
            raise NotFoundError(f"user '{login}' does not exist")
        return Role(row["role"].strip())

    # validation
    def validate_login(self, login: str, exclude_login: str | None = None):
        if not (1 <= len(login) <= LOGIN_MAX_LEN):
            raise ValidationError(f"login should be between 1-{LOGIN_MAX_LEN} characters")
        if login != exclude_login and self.user_exists(login):
            raise ValidationError("another user with the same login exists!")

    @staticmethod
    def validate_password(password: str):
        if not (1 <= len(password) <= PASSWORD_MAX_LEN):
            raise ValidationError(f"password should be between 1-{PASSWORD_MAX_LEN} characters")

    def validate_phone(self, phone: str, exclude_login: str | None = None):
        if not (1 <= len(phone) <= PHONE_MAX_LEN):
            raise ValidationError(f"phone number should be between 1-{PHONE_MAX_LEN} characters")
        if self.phone_taken(phone, exclude_login):
            raise ValidationError("another user with the same phone number exists!")

    # signup / login
    def create_user(self, login: str, password: str, phone: str) -> User:
        """sign up a new customer with no favourites"""
        self.validate_login(login)
        self.validate_password(password)
        self.validate_phone(phone)
        self.db.execute_update(
            "INSERT INTO users(login, password, phone_num, fav_items, role) VALUES(?,?,?,NULL,?);",
            (login, password, phone, Role.CUSTOMER.value)
        )
        log_event(f"user created: {login}")
        return User(login=login, password=password, phone_num=phone, role=Role.CUSTOMER)

    def authenticate(self, login: str, password: str) -> User | None:
        """exact (login, password) match; none on any mismatch"""
        row = self.db.query_one(
            "SELECT login, password, phone_num, fav_items, role FROM users WHERE login=? AND password=?;",
            (login, password)
        )
        if row is None:
            log_warning(f"failed login attempt for '{login}'")
            return None
        return User.from_row(row)

    @staticmethod
    def open_session(user: User) -> Session:
        return Session(login=user.login, password=user.password, role=user.role)

    def session_is_valid(self, session: Session) -> bool:
        """true while the session's login, password and role still match a live row"""
        return self.db.query_count(
            "SELECT 1 FROM users WHERE login=? AND password=? AND role=?;",
            (session.login, session.password, session.role.value)
        ) > 0

    @staticmethod
    def require_role(session: Session, roles: tuple[Role, ...], action: str):
        """guard for role-gated operations"""
        if session.role not in roles:
            names = " or ".join(r.value.lower() for r in roles)
            raise PermissionDenied(f"{names} privileges required to {action}")

    # interactive
    def prompt_register(self, login: str | None = None, password: str | None = None, phone: str | None = None):
        """create new customer account"""
        if login is None:
            login = input(colored("choose a login: ", "magenta")).strip()
        if password is None:
            password = input(colored("choose a password: ", "magenta")).strip()
        if phone is None:
            phone = input(colored("phone number: ", "magenta")).strip()
        self.create_user(login, password, phone)
        cprint("user successfully created!", "green")

    def prompt_login(self, login: str | None = None, password: str | None = None) -> Session | None:
        """interactive login (or non-interactive if args provided)"""
        if login is None:
            login = input(colored("login: ", "magenta")).strip()
        if password is None:
            password = input(colored("password: ", "magenta")).strip()
        user = self.authenticate(login, password)
        if user is None:
            cprint("invalid login or password", "red")
            return None
        session = self.open_session(user)
        prefix = f"{user.role.value.lower()}: " if user.role is not Role.CUSTOMER else ""
        cprint(f"logged in as {prefix}{colored(user.login, 'yellow', attrs=['bold'])}", "green")
        log_event(f"login: {user.login} ({user.role.value})")
        return session

    def whoami(self, session: Session):
        """print current user identity"""
        user = self.get_user(session.login)
        if user is None:
            cprint("error fetching user info", "red"); return
        prefix = f"{user.role.value.lower()}: " if user.role is not Role.CUSTOMER else ""
        cprint(f"you are logged in as {prefix}{colored(user.login, 'yellow', attrs=['bold'])}", "green")
        print("\tphone:", user.phone_num)
        print("\tfavorites:", ", ".join(user.favorites) or "none")
