#!/usr/bin/env python3
# Copyright 2021 Canonical Ltd.
# See LICENSE file for licensing details.

"""
This module has custom exceptions for the mysql-user operator.

Failures reported by the database itself are not wrapped: the
`mysql.connector.Error` raised by the driver reaches the caller unchanged.
"""


class Error(Exception):
    """Base class for exceptions in this module."""

    def __init__(self, message: str = "") -> None:
        """Initialize the Error class.

        Args:
            message: Optional message to pass to the exception.
        """
        super().__init__(message)
        self.message = message

    def __repr__(self):
        """String representation of the Error class."""
        return "<{}.{} {}>".format(type(self).__module__, type(self).__name__, self.args)

    @property
    def name(self):
        """Return a string representation of the model plus class."""
        return "<{}.{}>".format(type(self).__module__, type(self).__name__)


class MySQLUserValidationError(Error):
    """Exception raised when the desired user attributes cannot be combined."""


class MySQLUserIdFormatError(Error):
    """Exception raised when a user id is not in USER@HOST format."""
