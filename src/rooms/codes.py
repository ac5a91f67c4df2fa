"""Room codes: generation and canonical form."""

import random
import re
import string
from typing import Callable, Optional

from src.core.exceptions import CodeSpaceExhaustedError, InvalidCodeError

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits
ROOM_CODE_LENGTH = 6
DEFAULT_MAX_ATTEMPTS = 100

_NON_ALPHANUMERIC = re.compile(r"[^A-Z0-9]")


def generate_room_code(
    is_taken: Callable[[str], bool],
    rng: Optional[random.Random] = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> str:
    """
    Draw random codes until one is not used by a live room.

    Collisions are rare with 36^6 codes, but still checked. Gives up after `max_attempts` draws.
    """
    rng = rng or random.Random()
    for _ in range(max_attempts):
        code = "".join(rng.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))
        if not is_taken(code):
            return code
    raise CodeSpaceExhaustedError(
        f"No free room code found after {max_attempts} attempts."
    )


def normalize_room_code(raw: object, strict: bool = True) -> str:
    """
    Canonical form used as storage key: trimmed, upper case and (strict) stripped of anything that is not A-Z/0-9.

    Raises InvalidCodeError if what remains is not a full room code.
    """
    if not isinstance(raw, str):
        raise InvalidCodeError("Invalid room code")

    code = raw.strip().upper()
    if strict:
        code = _NON_ALPHANUMERIC.sub("", code)

    if len(code) != ROOM_CODE_LENGTH or any(
        character not in ROOM_CODE_ALPHABET for character in code
    ):
        raise InvalidCodeError(f"Invalid room code: {raw!r}")
    return code


def invite_link(client_url: str, code: str) -> str:
    return f"{client_url.rstrip('/')}/join/{code}"
