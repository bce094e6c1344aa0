# input parsing + money helpers shared by the prompts

from decimal import Decimal, InvalidOperation, ROUND_FLOOR, ROUND_HALF_UP

from termcolor import cprint, colored

CENT = Decimal("0.01")

# sentinels typed at prompts
EXIT = "EXIT"
SKIP = "SKIP"
NONE = "NONE"
CONFIRM = "CONFIRM"


def safe_int(value: str, minimum: int | None = None):
    """return int value or none if invalid / below minimum"""
    try:
        v = int(value)
        if minimum is not None and v < minimum:
            return None
        return v
    except ValueError:
        return None


def safe_decimal(value: str) -> Decimal | None:
    """return a finite, cent-quantizable decimal or none if the text isn't one"""
    try:
        d = Decimal(value.strip())
    except (InvalidOperation, AttributeError):
        return None
    return d if d.is_finite() and fits_in_cents(d) else None


def to_money(value) -> Decimal:
    """normalise a db REAL / str / Decimal to a cent-quantized decimal"""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def color_money(amount) -> str:
    """format amount as green money string"""
    return colored(f"${to_money(amount):.2f}", "green")


def parse_boolean_input(prompt: str, handle_invalid: bool = False) -> bool:
    """parse y/n style input; optionally warn on invalid"""
    p = prompt.lower().strip()
    if p in ("y", "yes"):
        return True
    if p in ("n", "no"):
        return False
    if handle_invalid:
        cprint("invalid input, please try again.", "red")
    return False


def fits_in_cents(price: Decimal) -> bool:
    """false when the value has too many digits to be quantized to the cent"""
    try:
        price.quantize(CENT)
    except InvalidOperation:
        return False
    return True


def has_sub_cent_digits(price: Decimal) -> bool:
    """true if price carries more than two fractional digits"""
    return price != price.quantize(CENT, rounding=ROUND_FLOOR)


def price_alternatives(price: Decimal) -> tuple[Decimal, Decimal]:
    """(truncated, rounded) versions of a price, both to the cent

    truncation floors to the cent, rounding is half-up:
    19.999 -> (19.99, 20.00), 3.505 -> (3.50, 3.51)
    """
    return (
        price.quantize(CENT, rounding=ROUND_FLOOR),
        price.quantize(CENT, rounding=ROUND_HALF_UP),
    )


def choose_menu_option(options: list[str], prompt: str = "choose an option: ") -> int | None:
    """print a numbered list and return the picked index (none on blank / EXIT)"""
    for i, opt in enumerate(options, start=1):
        print(f"{colored(str(i), 'light_blue')}. {opt}")
    while True:
        raw = input(prompt).strip()
        if raw in ("", EXIT):
            return None
        idx = safe_int(raw, minimum=1)
        if idx is not None and idx <= len(options):
            return idx - 1
        cprint("unrecognized choice!", "red")
