"""
Closed set of roles and their hierarchy.

A role implicitly holds every role listed under it:
  admin      → controller, client
  controller → client
  client     → (nothing)
"""
from enum import Enum


class Role(str, Enum):
    ADMIN = "admin"
    CONTROLLER = "controller"
    CLIENT = "client"


ROLE_HIERARCHY: dict[Role, set[Role]] = {
    Role.ADMIN: {Role.CONTROLLER, Role.CLIENT},
    Role.CONTROLLER: {Role.CLIENT},
    Role.CLIENT: set(),
}


def has_role(user_role: str, required: str) -> bool:
    """True if user_role is `required` or sits above it in the hierarchy."""
    try:
        held = Role(user_role)
        wanted = Role(required)
    except ValueError:
        return False
    return held == wanted or wanted in ROLE_HIERARCHY[held]
