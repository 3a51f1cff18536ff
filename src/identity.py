# Copyright 2022 Canonical Ltd.
# See LICENSE file for licensing details.

"""Encoding of the `USER@HOST` id naming a managed MySQL user."""

from typing import Tuple

from custom_exceptions import MySQLUserIdFormatError


def encode_user_id(name: str, host: str) -> str:
    """Return the id of the account `name`@`host`."""
    return f"{name}@{host}"


def decode_user_id(user_id: str) -> Tuple[str, str]:
    """Split an id into user name and host.

    Only the first `@` separates the two parts, anything after it belongs to
    the host.

    Raises:
        MySQLUserIdFormatError: if the id has no `@`.
    """
    parts = user_id.split("@", 1)
    if len(parts) != 2:
        raise MySQLUserIdFormatError(
            f"Error parsing id, unable to import: {user_id}. Must be in format USER@HOST."
        )

    return parts[0], parts[1]
