#!/usr/bin/env python3
# Copyright 2021 Canonical Ltd.
# See LICENSE file for licensing details.

"""Charm reconciling a MySQL user against a MySQL server."""

import logging
from typing import Optional

from mysql.connector import Error as MySQLError
from ops.charm import ActionEvent, CharmBase
from ops.framework import StoredState
from ops.main import main
from ops.model import ActiveStatus, BlockedStatus, WaitingStatus
from pydantic import ValidationError

from config import CharmConfig
from constants import IMPORT_USER_ACTION
from custom_exceptions import Error, MySQLUserIdFormatError
from mysql_connection import MySQLConnection
from mysql_user import MySQLUserController, ProviderConfiguration, UserResource
from server_version import ServerVersion
from user_spec import ChangeSet, UserSpec, validate_auth_plugin
from utils import stored_digest

logger = logging.getLogger(__name__)


class MySQLUserOperatorCharm(CharmBase):
    """Operator framework charm managing a single MySQL user."""

    _stored = StoredState()

    def __init__(self, *args):
        super().__init__(*args)
        self._stored.set_default(
            id="",
            user="",
            host="",
            auth_plugin="",
            plaintext_password="",
            password="",
        )
        self.controller = MySQLUserController()

        self.framework.observe(self.on.config_changed, self._on_config_changed)
        self.framework.observe(self.on.update_status, self._on_update_status)
        self.framework.observe(self.on.remove, self._on_remove)
        self.framework.observe(self.on.import_user_action, self._on_import_user_action)

    @property
    def charm_config(self) -> CharmConfig:
        """Typed view of the charm config."""
        return CharmConfig.from_charm_config(self.config)

    def _get_connection(self, config: CharmConfig) -> MySQLConnection:
        """Returns a connection to the configured MySQL server."""
        host, port = config.endpoint_address()
        return MySQLConnection(host, port, config.mysql_username, config.mysql_password or "")

    def _stored_resource(self) -> UserResource:
        """The user last applied to the server, passwords excluded."""
        return UserResource(
            spec=UserSpec(
                name=self._stored.user,
                host=self._stored.host,
                auth_plugin=self._stored.auth_plugin or None,
            ),
            id=self._stored.id,
        )

    def _save_resource(self, resource: UserResource) -> None:
        """Persist the id of the user and the digests of its passwords."""
        self._stored.id = resource.id
        self._stored.user = resource.spec.name
        self._stored.host = resource.spec.host
        self._stored.auth_plugin = resource.spec.auth_plugin or ""
        self._stored.plaintext_password = stored_digest(resource.spec.plaintext_password)
        self._stored.password = stored_digest(resource.spec.password)

    def _forget_resource(self) -> None:
        self._save_resource(UserResource(spec=UserSpec(name="", host="")))

    def _requires_replacement(self, spec: UserSpec) -> bool:
        """Whether attributes that cannot be updated in place have changed."""
        return (
            spec.name != self._stored.user
            or spec.host != self._stored.host
            or (spec.auth_plugin or "") != self._stored.auth_plugin
        )

    def _changes(self, spec: UserSpec) -> ChangeSet:
        return ChangeSet(
            plaintext_password=stored_digest(spec.plaintext_password)
            != self._stored.plaintext_password,
            password=stored_digest(spec.password) != self._stored.password,
        )

    def _load_config(self) -> Optional[CharmConfig]:
        """Return the parsed config, blocking the unit when it is invalid."""
        try:
            config = self.charm_config
        except ValidationError as e:
            logger.error(f"Invalid configuration: {e}")
            self.unit.status = BlockedStatus("invalid configuration, see debug-log")
            return None

        if not config.user:
            self.unit.status = BlockedStatus("user config option is not set")
            return None

        return config

    def _reconcile(self) -> None:
        """Bring the MySQL user in line with the charm config."""
        if not self.unit.is_leader():
            return

        config = self._load_config()
        if not config:
            return

        connection = self._get_connection(config)
        if not connection.is_ready():
            self.unit.status = WaitingStatus("waiting for MySQL server")
            return

        desired = config.user_spec()
        try:
            validate_auth_plugin(desired)
            current = self._stored_resource()
            if current.id:
                self.controller.read(current, connection)
                if not current.id:
                    self._forget_resource()

            if current.id and self._requires_replacement(desired):
                logger.info(f"Replacing MySQL user {current.id}")
                self.controller.delete(current, connection)
                self._forget_resource()

            if not self._stored.id:
                resource = UserResource(spec=desired)
                self.controller.create(resource, connection)
            else:
                changes = self._changes(desired)
                resource = UserResource(spec=desired, id=self._stored.id, changes=changes)
                # the server version is only needed to pick the password change dialect
                if changes.changed_credential(desired) is not None:
                    conf = ProviderConfiguration(
                        db=connection, server_version=ServerVersion.parse(connection.version())
                    )
                    self.controller.update(resource, conf)

            self._save_resource(resource)
        except Error as e:
            logger.error(f"Invalid MySQL user {desired.name}@{desired.host}: {e.message}")
            self.unit.status = BlockedStatus(e.message)
            return
        except MySQLError:
            logger.exception(f"Failed to reconcile MySQL user {desired.name}@{desired.host}")
            self.unit.status = BlockedStatus("failed to reconcile MySQL user, see debug-log")
            return
        finally:
            connection.close()

        self.unit.status = ActiveStatus(f"managing {resource.id}")

    def _on_config_changed(self, _) -> None:
        self._reconcile()

    def _on_update_status(self, _) -> None:
        self._reconcile()

    def _on_remove(self, _) -> None:
        """Drop the managed user when the unit goes away."""
        if not self.unit.is_leader() or not self._stored.id:
            return

        try:
            config = self.charm_config
        except ValidationError as e:
            logger.error(f"Invalid configuration: {e}")
            self.unit.status = BlockedStatus("invalid configuration, see debug-log")
            return

        connection = self._get_connection(config)
        resource = self._stored_resource()
        try:
            connection.wait_until_mysql_connection()
            self.controller.delete(resource, connection)
        except MySQLError:
            logger.exception(f"Failed to drop MySQL user {resource.id}")
            raise
        finally:
            connection.close()

        self._forget_resource()

    def _on_import_user_action(self, event: ActionEvent) -> None:
        """Action used to take over management of an existing user."""
        if not self.unit.is_leader():
            event.fail(f"{IMPORT_USER_ACTION} action can only be run on the leader unit.")
            return

        try:
            config = self.charm_config
        except ValidationError as e:
            event.fail(f"Invalid configuration: {e}")
            return

        request = UserResource(
            spec=UserSpec(
                name="",
                plaintext_password=config.plaintext_password,
                auth_plugin=config.auth_plugin,
            ),
            id=event.params["id"],
            changes=ChangeSet(plaintext_password=bool(config.plaintext_password)),
        )
        try:
            resource = self.controller.import_user(request)
        except MySQLUserIdFormatError as e:
            event.fail(e.message)
            return

        connection = self._get_connection(config)
        try:
            connection.wait_until_mysql_connection()
            self.controller.read(resource, connection)
        except MySQLError as e:
            logger.exception(f"Failed to read MySQL user {request.id}")
            event.fail(f"Failed to read MySQL user {request.id}: {e}")
            return
        finally:
            connection.close()

        if not resource.id:
            event.fail(f"user {request.id} does not exist")
            return

        self._save_resource(resource)
        event.set_results({
            "id": resource.id,
            "user": resource.spec.name,
            "host": resource.spec.host,
        })


if __name__ == "__main__":
    main(MySQLUserOperatorCharm)
