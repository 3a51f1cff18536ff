# Copyright 2022 Canonical Ltd.
# See LICENSE file for licensing details.

import unittest
from unittest.mock import MagicMock

from mysql.connector import Error

from custom_exceptions import MySQLUserIdFormatError, MySQLUserValidationError
from identity import decode_user_id
from mysql_connection import DatabaseHandle
from mysql_user import MySQLUserController, ProviderConfiguration, UserResource
from server_version import ServerVersion
from user_spec import ChangeSet, UserSpec


class TestMySQLUserController(unittest.TestCase):
    def setUp(self):
        self.controller = MySQLUserController()
        self.db = MagicMock(spec=DatabaseHandle)
        self.db.execute.return_value = 0

    def _conf(self, version: str) -> ProviderConfiguration:
        return ProviderConfiguration(db=self.db, server_version=ServerVersion.parse(version))

    def test_create(self):
        resource = UserResource(
            spec=UserSpec(name="alice", host="10.0.0.1", plaintext_password="s3cret")
        )

        self.assertEqual(self.controller.create(resource, self.db), "alice@10.0.0.1")

        self.assertEqual(resource.id, "alice@10.0.0.1")
        self.assertEqual(decode_user_id(resource.id), ("alice", "10.0.0.1"))
        self.db.execute.assert_called_once()
        statement = self.db.execute.call_args.args[0]
        self.assertEqual(
            statement.render(mask_secrets=False),
            "CREATE USER 'alice'@'10.0.0.1' IDENTIFIED BY 's3cret'",
        )

    def test_create_with_auth_plugin(self):
        resource = UserResource(
            spec=UserSpec(
                name="iam",
                host="%",
                plaintext_password="ignored",
                auth_plugin="AWSAuthenticationPlugin",
            )
        )

        self.controller.create(resource, self.db)

        statement = self.db.execute.call_args.args[0]
        self.assertNotIn("IDENTIFIED BY", statement.render(mask_secrets=False))
        self.assertNotIn("ignored", statement.render(mask_secrets=False))
        self.assertEqual(resource.id, "iam@%")

    def test_create_iam_against_localhost(self):
        resource = UserResource(spec=UserSpec(name="iam", auth_plugin="AWSAuthenticationPlugin"))

        with self.assertRaises(MySQLUserValidationError):
            self.controller.create(resource, self.db)

        self.db.execute.assert_not_called()
        self.db.query.assert_not_called()
        self.assertEqual(resource.id, "")

    def test_create_failure(self):
        self.db.execute.side_effect = Error(msg="Operation CREATE USER failed", errno=1396)
        resource = UserResource(spec=UserSpec(name="alice"))

        with self.assertRaises(Error) as context:
            self.controller.create(resource, self.db)

        self.assertEqual(context.exception.errno, 1396)
        self.assertEqual(resource.id, "")

    def test_update_with_auth_plugin_is_noop(self):
        resource = UserResource(
            spec=UserSpec(name="nologin", auth_plugin="mysql_no_login", plaintext_password="x"),
            id="nologin@localhost",
            changes=ChangeSet(plaintext_password=True, password=True),
        )

        self.controller.update(resource, self._conf("8.0.36"))

        self.db.execute.assert_not_called()

    def test_update_without_changes_is_noop(self):
        resource = UserResource(
            spec=UserSpec(name="alice", plaintext_password="s3cret"), id="alice@localhost"
        )

        self.controller.update(resource, self._conf("8.0.36"))

        self.db.execute.assert_not_called()

    def test_update_dialect_boundary(self):
        resource = UserResource(
            spec=UserSpec(name="alice", plaintext_password="n3w"),
            id="alice@localhost",
            changes=ChangeSet(plaintext_password=True),
        )

        self.controller.update(resource, self._conf("5.7.5"))
        self.assertEqual(
            self.db.execute.call_args.args[0].render(mask_secrets=False),
            "SET PASSWORD FOR 'alice'@'localhost' = PASSWORD('n3w')",
        )

        self.controller.update(resource, self._conf("5.7.6"))
        self.assertEqual(
            self.db.execute.call_args.args[0].render(mask_secrets=False),
            "ALTER USER 'alice'@'localhost' IDENTIFIED BY 'n3w'",
        )

        self.controller.update(resource, self._conf("8.0.36-0ubuntu0.22.04.1"))
        self.assertEqual(
            self.db.execute.call_args.args[0].render(mask_secrets=False),
            "ALTER USER 'alice'@'localhost' IDENTIFIED BY 'n3w'",
        )
        self.assertEqual(self.db.execute.call_count, 3)

    def test_update_legacy_password(self):
        resource = UserResource(
            spec=UserSpec(name="alice", password="old-style"),
            id="alice@localhost",
            changes=ChangeSet(password=True),
        )

        self.controller.update(resource, self._conf("8.0.36"))

        self.db.execute.assert_called_once()
        self.assertEqual(
            self.db.execute.call_args.args[0].params["password"], "old-style"
        )

    def test_update_prefers_plaintext_password(self):
        resource = UserResource(
            spec=UserSpec(name="alice", plaintext_password="new", password="old"),
            id="alice@localhost",
            changes=ChangeSet(plaintext_password=True, password=True),
        )

        self.controller.update(resource, self._conf("8.0.36"))

        self.assertEqual(self.db.execute.call_args.args[0].params["password"], "new")

    def test_read_absent_user_clears_id(self):
        self.db.query.return_value = []
        resource = UserResource(spec=UserSpec(name="alice"), id="alice@localhost")

        self.controller.read(resource, self.db)

        self.assertEqual(resource.id, "")
        self.assertEqual(
            self.db.query.call_args.args[0].render(),
            "SELECT USER FROM mysql.user WHERE USER='alice'",
        )

    def test_read_existing_user_keeps_id(self):
        self.db.query.return_value = [("alice",)]
        resource = UserResource(spec=UserSpec(name="alice", host="%"), id="alice@%")

        self.controller.read(resource, self.db)

        self.assertEqual(resource.id, "alice@%")

    def test_read_failure(self):
        self.db.query.side_effect = Error(msg="Lost connection", errno=2013)
        resource = UserResource(spec=UserSpec(name="alice"), id="alice@localhost")

        with self.assertRaises(Error):
            self.controller.read(resource, self.db)

        self.assertEqual(resource.id, "alice@localhost")

    def test_delete(self):
        resource = UserResource(spec=UserSpec(name="alice", host="%"), id="alice@%")

        self.controller.delete(resource, self.db)

        self.assertEqual(resource.id, "")
        self.assertEqual(self.db.execute.call_args.args[0].render(), "DROP USER 'alice'@'%'")

    def test_delete_twice(self):
        resource = UserResource(spec=UserSpec(name="alice", host="%"), id="alice@%")
        self.controller.delete(resource, self.db)

        # the account is already gone, as would happen on drift
        resource.id = "alice@%"
        self.db.execute.side_effect = Error(msg="Operation DROP USER failed", errno=1396)
        with self.assertRaises(Error):
            self.controller.delete(resource, self.db)

        self.assertEqual(resource.id, "alice@%")

    def test_import_user(self):
        resource = self.controller.import_user(
            UserResource(spec=UserSpec(name=""), id="alice@10.0.0.1")
        )

        self.assertEqual(resource.spec.name, "alice")
        self.assertEqual(resource.spec.host, "10.0.0.1")
        self.assertEqual(resource.id, "alice@10.0.0.1")
        self.assertIsNone(resource.spec.plaintext_password)
        self.db.execute.assert_not_called()

    def test_import_user_passes_through_plaintext_password(self):
        resource = self.controller.import_user(
            UserResource(
                spec=UserSpec(name="", plaintext_password="s3cret"),
                id="alice@%",
                changes=ChangeSet(plaintext_password=True),
            )
        )

        self.assertEqual(resource.spec.plaintext_password, "s3cret")
        self.assertTrue(resource.changes.plaintext_password)

    def test_import_user_invalid_id(self):
        with self.assertRaises(MySQLUserIdFormatError):
            self.controller.import_user(UserResource(spec=UserSpec(name=""), id="alice"))
