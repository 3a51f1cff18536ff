# Copyright 2022 Canonical Ltd.
# See LICENSE file for licensing details.

"""A collection of utility functions that are used in the charm."""

import hashlib
import re
from typing import Iterable, Optional

from constants import HIDDEN_PASSWORD


def hash_sum(contents: str) -> str:
    """Return the digest stored in place of a secret.

    Args:
        contents: the secret to fingerprint
    Returns:
        The hex encoded sha256 digest of the secret.
    """
    return hashlib.sha256(contents.encode("utf-8")).hexdigest()


def stored_digest(secret: Optional[str]) -> str:
    """Digest of an optional secret, empty string when the secret is unset."""
    return hash_sum(secret) if secret else ""


def strip_off_passwords(input_string: Optional[str], passwords: Iterable[str] = ()) -> str:
    """Strips off passwords from the input string."""
    if not input_string:
        return ""
    stripped_input = input_string
    for password in passwords:
        if password:
            stripped_input = stripped_input.replace(password, HIDDEN_PASSWORD)
    if "IDENTIFIED" in input_string or "PASSWORD(" in input_string:
        # when failure occurs for password setting (user creation, password rotation)
        pattern = r"(?<=IDENTIFIED BY\ \')[^\']+(?=\')|(?<=PASSWORD\(\')[^\']+(?=\'\))"
        stripped_input = re.sub(pattern, HIDDEN_PASSWORD, stripped_input)
    return stripped_input
