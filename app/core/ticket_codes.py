import secrets
from app.core.config import TICKET_CODE_PREFIX, TICKET_CODE_LENGTH

# no 0/O or 1/I, codes get read out loud at the gate
ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def generate_ticket_code(prefix: str = TICKET_CODE_PREFIX, length: int = TICKET_CODE_LENGTH) -> str:
    suffix = "".join(secrets.choice(ALPHABET) for _ in range(length))
    return f"{prefix}{suffix}"


def generate_ticket_codes(count: int, *, exclude: set[str] | None = None) -> list[str]:
    """
    Returns `count` distinct codes, none of them in `exclude`.
    Uniqueness against stored tickets is left to the ticket_code unique index.
    """
    if count < 0:
        raise ValueError("count must be non-negative")

    taken = set(exclude or ())
    codes: list[str] = []
    while len(codes) < count:
        code = generate_ticket_code()
        if code in taken:
            continue
        taken.add(code)
        codes.append(code)
    return codes
