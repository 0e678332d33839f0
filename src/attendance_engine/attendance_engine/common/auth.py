from __future__ import annotations

from dataclasses import dataclass
from functools import wraps

from flask import session

from ..core.enums import Role
from ..core.exceptions import AuthenticationError


@dataclass(frozen=True)
class Actor:
    user_id: int
    role: Role


def current_actor() -> Actor:
    """Acting user from the Flask session populated by the login layer."""
    if "user_id" not in session:
        raise AuthenticationError("Please log in to continue")
    try:
        role = Role(str(session.get("role", Role.EMPLOYEE.value)).upper())
    except ValueError:
        raise AuthenticationError("Session role is not recognized")
    return Actor(user_id=int(session["user_id"]), role=role)


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        current_actor()
        return view(*args, **kwargs)

    return wrapper
