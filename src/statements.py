# Copyright 2022 Canonical Ltd.
# See LICENSE file for licensing details.

"""SQL statements issued to manage a MySQL user.

Statements are kept as a `pyformat` template plus the values bound to it, so
the driver quotes every user supplied value. `Statement.render()` produces the
equivalent literal SQL for logging, with secrets masked by default.
"""

import dataclasses
from typing import Dict, FrozenSet

from constants import AUTH_PLUGIN_CLAUSES, HIDDEN_PASSWORD
from server_version import PasswordDialect
from user_spec import UserSpec, validate_auth_plugin

CREATE_USER = "CREATE USER %(user)s@%(host)s"
IDENTIFIED_BY = " IDENTIFIED BY %(password)s"
SET_PASSWORD = "SET PASSWORD FOR %(user)s@%(host)s = PASSWORD(%(password)s)"
ALTER_USER_PASSWORD = "ALTER USER %(user)s@%(host)s IDENTIFIED BY %(password)s"
SELECT_USER = "SELECT USER FROM mysql.user WHERE USER=%(user)s"
DROP_USER = "DROP USER %(user)s@%(host)s"


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


@dataclasses.dataclass(frozen=True)
class Statement:
    """A SQL template and the parameters bound to it."""

    template: str
    params: Dict[str, str] = dataclasses.field(default_factory=dict)
    secrets: FrozenSet[str] = frozenset()

    def render(self, mask_secrets: bool = True) -> str:
        """Return the statement as literal SQL.

        Args:
            mask_secrets: replace secret parameters with a placeholder
        Returns:
            The template with every parameter substituted as a quoted literal.
        """
        values = {
            key: _quote(HIDDEN_PASSWORD if mask_secrets and key in self.secrets else value)
            for key, value in self.params.items()
        }
        return self.template % values

    @property
    def secret_values(self) -> tuple:
        """Values of the secret parameters, used to scrub error messages."""
        return tuple(self.params[key] for key in self.secrets if self.params.get(key))

    def __str__(self) -> str:
        """Masked rendering of the statement."""
        return self.render()


def build_create_user(spec: UserSpec) -> Statement:
    """Build the CREATE USER statement for the given spec.

    An auth plugin takes precedence over both password fields, which are then
    ignored. Raises MySQLUserValidationError for unsupported auth settings.
    """
    validate_auth_plugin(spec)

    params = {"user": spec.name, "host": spec.host}
    if spec.auth_plugin:
        return Statement(CREATE_USER + AUTH_PLUGIN_CLAUSES[spec.auth_plugin], params)

    params["password"] = spec.credential.value
    return Statement(CREATE_USER + IDENTIFIED_BY, params, frozenset({"password"}))


def build_password_change(spec: UserSpec, password: str, dialect: PasswordDialect) -> Statement:
    """Build the password change statement for the dialect of the server."""
    template = SET_PASSWORD if dialect == PasswordDialect.LEGACY else ALTER_USER_PASSWORD
    params = {"user": spec.name, "host": spec.host, "password": password}
    return Statement(template, params, frozenset({"password"}))


def build_read_user(name: str) -> Statement:
    """Build the existence check for any account named `name`, whatever its host."""
    return Statement(SELECT_USER, {"user": name})


def build_drop_user(spec: UserSpec) -> Statement:
    """Build the DROP USER statement for `name@host`."""
    return Statement(DROP_USER, {"user": spec.name, "host": spec.host})
