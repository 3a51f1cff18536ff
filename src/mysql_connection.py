#!/usr/bin/env python3
# Copyright 2021 Canonical Ltd.
# See LICENSE file for licensing details.

"""Database handle used by the controller, backed by mysql-connector."""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from mysql.connector import Error, connect
from tenacity import retry, stop_after_delay, wait_fixed

from constants import DEFAULT_MYSQL_PORT
from statements import Statement
from utils import strip_off_passwords

logger = logging.getLogger(__name__)


class DatabaseHandle(ABC):
    """An open connection able to run a single statement at a time."""

    @abstractmethod
    def execute(self, statement: Statement) -> int:
        """Run a statement and return the number of affected rows."""
        raise NotImplementedError

    @abstractmethod
    def query(self, statement: Statement) -> list:
        """Run a statement and return all fetched rows."""
        raise NotImplementedError


class MySQLConnection(DatabaseHandle):
    """Connection to the MySQL server holding the managed users.

    Args:
        host: address of the server
        port: port of the server
        user: administrative account used to manage users
        password: password of the administrative account
    """

    def __init__(
        self, host: str, port: int = DEFAULT_MYSQL_PORT, user: str = "root", password: str = ""
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self._client = None

    def _get_client(self):
        """Returns MySQL connection"""
        if self._client is None:
            self._client = connect(
                host=self.host,
                port=self.port,
                user=self.user,
                password=self.password,
                autocommit=True,
            )
        return self._client

    def is_ready(self) -> bool:
        """Returns if MySQL is up and running"""
        try:
            self._get_client()
        except Error as e:
            logger.debug("MySQL is not ready yet. - %s", e)
            return False

        logger.debug("MySQL service is ready.")
        return True

    @retry(reraise=True, stop=stop_after_delay(30), wait=wait_fixed(5))
    def wait_until_mysql_connection(self) -> None:
        """Wait until a connection to the server is possible.

        Retry every 5 seconds for 30 seconds if there is an issue obtaining a connection.
        """
        self._get_client()

    def _run(self, statement: Statement, fetch: bool):
        cursor = self._get_client().cursor()
        try:
            cursor.execute(statement.template, statement.params or None)
            if fetch:
                return cursor.fetchall()
            return cursor.rowcount
        except Error as e:
            logger.error(
                "Failed to execute %s: %s",
                statement,
                strip_off_passwords(str(e), statement.secret_values),
            )
            raise
        finally:
            cursor.close()

    def execute(self, statement: Statement) -> int:
        """Run a statement and return the number of affected rows."""
        return self._run(statement, fetch=False)

    def query(self, statement: Statement) -> list:
        """Run a statement and return all fetched rows."""
        return self._run(statement, fetch=True)

    def version(self) -> Optional[str]:
        """Get the running mysqld version, without vendor suffix."""
        version = self.query(Statement("SELECT VERSION()"))
        if not version:
            return None
        return version[0][0].split("-")[0]

    def close(self) -> None:
        """Close the underlying client, if any."""
        if self._client is not None:
            self._client.close()
            self._client = None
