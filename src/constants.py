# Copyright 2022 Canonical Ltd.
# See LICENSE file for licensing details.

"""File containing constants to be used in the charm."""

DEFAULT_HOST = "localhost"
DEFAULT_MYSQL_PORT = 3306
MYSQL_USERNAME_MAX_LENGTH = 32
AWS_AUTH_PLUGIN = "AWSAuthenticationPlugin"
NO_LOGIN_AUTH_PLUGIN = "mysql_no_login"
AUTH_PLUGIN_CLAUSES = {
    AWS_AUTH_PLUGIN: " IDENTIFIED WITH AWSAuthenticationPlugin as 'RDS'",
    NO_LOGIN_AUTH_PLUGIN: " IDENTIFIED WITH mysql_no_login",
}
# ALTER USER ... IDENTIFIED BY deprecates SET PASSWORD starting with 5.7.6
ALTER_USER_MINIMUM_VERSION = (5, 7, 6)
HIDDEN_PASSWORD = "*****"  # noqa: S105
IMPORT_USER_ACTION = "import-user"
