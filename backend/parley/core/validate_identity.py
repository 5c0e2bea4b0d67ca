"""Identity Validators — pure checks for emails and usernames.

Invariants:
    - All functions are PURE: no IO, no async, no DB
    - Raise the matching ParleyError on violation, return None on success
"""

from parley.core.errors import InvalidEmailError, InvalidUsernameError

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 20


def check_email(email: str | None) -> None:
    """An email must be non-empty and contain '@'."""
    if not email or "@" not in email:
        raise InvalidEmailError()


def check_username(username: str | None) -> None:
    """Usernames: 3-20 bytes of UTF-8, alphanumerics and '_' only.

    Length is measured in encoded bytes, so a name of non-ASCII letters fits
    fewer characters (ten two-byte letters at most).
    """
    if not username:
        raise InvalidUsernameError()
    if not USERNAME_MIN_LENGTH <= len(username.encode("utf-8")) <= USERNAME_MAX_LENGTH:
        raise InvalidUsernameError()
    if any(not (c.isalnum() or c == "_") for c in username):
        raise InvalidUsernameError()
