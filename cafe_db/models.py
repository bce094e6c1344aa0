# domain models (db-backed, rebuilt from sqlite rows on every read)

import sqlite3
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from cafe_db.helpers import to_money


class Role(Enum):
    """account role; decides which commands are dispatched"""
    CUSTOMER = "Customer"
    EMPLOYEE = "Employee"
    MANAGER = "Manager"

    @property
    def is_staff(self) -> bool:
        return self in (Role.EMPLOYEE, Role.MANAGER)


ALL_ROLES = (Role.CUSTOMER, Role.EMPLOYEE, Role.MANAGER)
STAFF_ROLES = (Role.EMPLOYEE, Role.MANAGER)
MANAGER_ONLY = (Role.MANAGER,)


class ItemState(Enum):
    """preparation state of one item in one order; any state may follow any other"""
    NOT_STARTED = "Hasn't Started"
    STARTED = "Started"
    FINISHED = "Finished"


def _text(value) -> str | None:
    return value.strip() if isinstance(value, str) else value


@dataclass
class User:
    login: str
    password: str
    phone_num: str
    role: Role
    favorites: list[str] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "User":
        fav = _text(row["fav_items"])
        return cls(
            login=_text(row["login"]),
            password=_text(row["password"]),
            phone_num=_text(row["phone_num"]),
            role=Role(_text(row["role"])),
            favorites=[f.strip() for f in fav.split(",") if f.strip()] if fav else [],
        )


@dataclass
class MenuItem:
    name: str
    type: str
    price: Decimal
    description: str = ""
    image_url: str = ""

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "MenuItem":
        return cls(
            name=_text(row["item_name"]),
            type=_text(row["type"]),
            price=to_money(row["price"]),
            description=_text(row["description"]) or "",
            image_url=_text(row["image_url"]) or "",
        )


@dataclass
class Order:
    id: int
    login: str
    paid: bool
    received_at: str
    total: Decimal

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Order":
        return cls(
            id=row["order_id"],
            login=_text(row["login"]),
            paid=bool(row["paid"]),
            received_at=row["received_at"],
            total=to_money(row["total"]),
        )


@dataclass
class ItemStatus:
    order_id: int
    item_name: str
    last_updated: str
    status: ItemState
    comment: str | None = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "ItemStatus":
        return cls(
            order_id=row["order_id"],
            item_name=_text(row["item_name"]),
            last_updated=row["last_updated"],
            status=ItemState(_text(row["status"])),
            comment=_text(row["comments"]),
        )


@dataclass(frozen=True)
class Session:
    """who is logged in; passed explicitly to every authenticated operation"""
    login: str
    password: str
    role: Role

    @property
    def is_manager(self) -> bool:
        return self.role is Role.MANAGER

    @property
    def is_staff(self) -> bool:
        return self.role.is_staff
