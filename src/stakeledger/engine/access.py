"""Access control consumed by administrative operations."""

from typing import Iterable, Protocol

from .errors import ZeroAddress


class AccessControl(Protocol):
    def is_administrator(self, caller: str) -> bool:
        """Whether `caller` may run administrative operations."""


class OwnerAccessControl:
    """Single owner plus optional additional administrators."""

    def __init__(self, owner: str, administrators: Iterable[str] = ()):
        if not owner:
            raise ZeroAddress("owner must not be empty")
        self.owner = owner
        self.administrators = set(administrators)

    def is_administrator(self, caller: str) -> bool:
        return caller == self.owner or caller in self.administrators
