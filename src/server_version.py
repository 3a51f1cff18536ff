# Copyright 2022 Canonical Ltd.
# See LICENSE file for licensing details.

"""Server version handling and selection of the password change dialect."""

import enum
import re
from typing import NamedTuple

from constants import ALTER_USER_MINIMUM_VERSION


class ServerVersion(NamedTuple):
    """Numeric version of the running mysqld."""

    major: int
    minor: int = 0
    patch: int = 0

    @classmethod
    def parse(cls, version: str) -> "ServerVersion":
        """Parse a version string as reported by `SELECT VERSION()`.

        Vendor suffixes are ignored, e.g. "8.0.36-0ubuntu0.22.04.1" or
        "5.7.44-log".
        """
        matches = re.match(r"^\s*(\d+)(?:\.(\d+))?(?:\.(\d+))?", version or "")
        if not matches:
            raise ValueError(f"Invalid server version '{version}'")

        return cls(*(int(part) for part in matches.groups() if part is not None))

    def __str__(self) -> str:
        """Dotted representation of the version."""
        return ".".join(str(part) for part in self)


class PasswordDialect(str, enum.Enum):
    """SQL form used to change a user password."""

    LEGACY = "set-password"
    MODERN = "alter-user"


def select_password_dialect(server_version: ServerVersion) -> PasswordDialect:
    """Return the password change dialect supported by the server."""
    if server_version < ALTER_USER_MINIMUM_VERSION:
        return PasswordDialect.LEGACY
    return PasswordDialect.MODERN
