# command infrastructure: role-gated dispatch table + repl

import inspect
import sys
from typing import Callable

from termcolor import cprint, colored

from cafe_db.accounts import AccountManager
from cafe_db.errors import CafeError, DatabaseError
from cafe_db.helpers import parse_boolean_input
from cafe_db.logger import log_event, log_warning
from cafe_db.models import ALL_ROLES, Role, Session


class Command:
    """bind a command name to a function and the roles allowed to run it

    roles=None marks a command usable without logging in; every other
    command is called with the current session as its first argument
    """
    def __init__(self, name: str, function: Callable, description: str,
                 roles: tuple[Role, ...] | None = ALL_ROLES):
        self.name = name
        self._fn = function
        self.description = description
        self.roles = roles

    @property
    def needs_session(self) -> bool:
        return self.roles is not None

    def allowed_for(self, session: Session | None) -> bool:
        if not self.needs_session:
            return True
        return session is not None and session.role in self.roles

    def user_params(self) -> list[inspect.Parameter]:
        """parameters typed by the user (the session is filled in by the parser)"""
        params = list(inspect.signature(self._fn).parameters.values())
        return params[1:] if self.needs_session else params

    def execute(self, session: Session | None, tokens: list[str]):
        """validate arg count and invoke function"""
        params = self.user_params()
        if len(params) == 1 and len(tokens) > 1:
            # single argument commands take the rest of the line, e.g. "menu delete Club Sandwich"
            tokens = [" ".join(tokens)]
        required = sum(
            p.default == inspect.Parameter.empty and p.kind in (
                inspect.Parameter.POSITIONAL_OR_KEYWORD,
                inspect.Parameter.POSITIONAL_ONLY
            )
            for p in params
        )
        if not (required <= len(tokens) <= len(params)):
            cprint(f"invalid args for '{self.name}' (expected {required}-{len(params)}, got {len(tokens)})", "red")
            return
        if self.needs_session:
            return self._fn(session, *tokens)
        return self._fn(*tokens)


class CommandParser:
    """simple repl parser; owns the logged-in session between commands"""
    def __init__(self, account_manager: AccountManager):
        self.account_manager = account_manager
        self.session: Session | None = None
        self.commands: list[Command] = [
            Command("help", self.show_help, "show this help", None),
            Command("h", self.show_help, "alias help", None),
            Command("quit", self.quit, "exit program", None),
            Command("exit", lambda: cprint("use quit to exit", "yellow"), "alias quit", None),
            Command("account register", self.register, "create a customer account", None),
            Command("account login", self.login, "log in", None),
            Command("account logout", self.logout, "log out", None),
            Command("account whoami", self.account_manager.whoami, "current user"),
        ]

    def commands_for(self, session: Session | None) -> list[Command]:
        """the dispatch table visible to a session's role"""
        return [c for c in self.commands if c.allowed_for(session)]

    def _match(self, tokens: list[str]) -> Command | None:
        # longest name first so "menu search name" wins over "menu"
        for cmd in sorted(self.commands, key=lambda c: len(c.name.split()), reverse=True):
            parts = cmd.name.split()
            if tokens[:len(parts)] == parts:
                return cmd
        return None

    def parse_and_execute(self, input_str: str):
        """parse the raw input string and attempt to execute a command"""
        tokens = input_str.strip().split()
        if not tokens:
            return
        cmd = self._match(tokens)
        if cmd is None:
            cprint("unknown command. type 'help'", "red"); return
        if cmd.needs_session and self.session is None:
            cprint("please login/register first", "yellow")
            self.register_or_login()
            print()
        if cmd.needs_session and self.session is None:
            cprint("authentication required", "red"); return
        if not cmd.allowed_for(self.session):
            cprint("insufficient privileges", "red"); return
        args = tokens[len(cmd.name.split()):]
        try:
            return cmd.execute(self.session, args)
        except DatabaseError as e:
            # already logged with its statement by the gateway
            cprint(f"operation abandoned: {e}", "red")
        except CafeError as e:
            log_warning(f"'{cmd.name}' abandoned: {e}")
            cprint(str(e), "red")
        finally:
            self._revalidate_session()

    def _revalidate_session(self):
        """drop the session if its credentials changed underneath it"""
        if self.session is None or self.account_manager.session_is_valid(self.session):
            return
        cprint("your login, password or type changed, please log in again", "yellow")
        log_event(f"session of {self.session.login} invalidated")
        self.session = None

    # session commands
    def login(self, login: str | None = None, password: str | None = None):
        """log in (logging out the current user first if needed)"""
        if self.session is not None:
            cprint("already logged in", "yellow")
            if not parse_boolean_input(input("log out first? (y/N): ")):
                return
            self.logout()
        self.session = self.account_manager.prompt_login(login, password)

    def logout(self):
        """log out current user"""
        if self.session is None:
            cprint("no user logged in", "red"); return
        cprint(f"logged out {self.session.login}", "green")
        log_event(f"logout: {self.session.login}")
        self.session = None

    def register(self, login: str | None = None, password: str | None = None, phone: str | None = None):
        """create a customer account"""
        self.account_manager.prompt_register(login, password, phone)

    def register_or_login(self):
        """prompt user to pick register / login"""
        ans = input(f"would you like to ({colored('r','light_blue')})egister or ({colored('l','light_blue')})ogin?: ").strip().lower()
        try:
            if ans == "r":
                self.register()
                self.login()
            elif ans == "l":
                self.login()
            else:
                cprint("invalid option", "red")
        except CafeError as e:
            cprint(str(e), "red")

    def show_help(self):
        """display the commands available to the current user"""
        cprint("available commands:", "green", attrs=["bold"])
        visible = self.commands_for(self.session) if self.session else [
            c for c in self.commands if not c.needs_session or Role.CUSTOMER in c.roles
        ]
        width = max(len(c.name) for c in visible)
        for cmd in visible:
            params = " ".join(
                f"<{p.name}>" if p.default == inspect.Parameter.empty else f"[{p.name}]"
                for p in cmd.user_params()
            )
            line = f"{colored(cmd.name, 'blue')} {colored(params, 'cyan')}".strip()
            print(line.ljust(width + 25), "-", cmd.description)

    @staticmethod
    def quit():
        """interactive quit confirmation"""
        ans = input(colored("are you sure you want to quit? (y/N): ", "yellow"))
        if parse_boolean_input(ans):
            cprint("okay, see ya!", "green")
            sys.exit(0)
        cprint("continuing...", "green")

    def start_repl(self):
        """main repl loop"""
        while True:
            try:
                user_input = input(colored("\n> ", "blue")).strip()
            except EOFError:
                print()
                break
            if user_input:
                self.parse_and_execute(user_input)
