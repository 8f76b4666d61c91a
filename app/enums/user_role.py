from enum import Enum


class UserRole(str, Enum):
    CUSTOMER = "CUSTOMER"
    STAFF = "STAFF"
    ADMIN = "ADMIN"


STAFF_ROLES = frozenset({UserRole.STAFF, UserRole.ADMIN})
