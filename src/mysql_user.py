# Copyright 2022 Canonical Ltd.
# See LICENSE file for licensing details.

"""Lifecycle controller reconciling a single MySQL user.

The controller is stateless: every operation receives the desired state of
the user and an already open database handle, issues at most one statement
and reports the outcome through the `id` of the resource. Errors raised by
the database are propagated unchanged; retrying is left to the caller.

An example of driving the controller:

```python
controller = MySQLUserController()
resource = UserResource(spec=UserSpec(name="alice", host="%", plaintext_password="s3cret"))
controller.create(resource, connection)  # resource.id == "alice@%"
```
"""

import dataclasses
import logging
from typing import TYPE_CHECKING

from identity import decode_user_id, encode_user_id
from server_version import ServerVersion, select_password_dialect
from statements import (
    build_create_user,
    build_drop_user,
    build_password_change,
    build_read_user,
)
from user_spec import ChangeSet, UserSpec, validate_auth_plugin

if TYPE_CHECKING:
    from mysql_connection import DatabaseHandle

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class UserResource:
    """Desired state of a user together with the id of the live account.

    An empty `id` means the account does not exist (or was deleted).
    `changes` lists the password fields changed since the last invocation.
    """

    spec: UserSpec
    id: str = ""
    changes: ChangeSet = dataclasses.field(default_factory=ChangeSet)


@dataclasses.dataclass
class ProviderConfiguration:
    """Connection and server version available to update operations."""

    db: "DatabaseHandle"
    server_version: ServerVersion


class MySQLUserController:
    """Create, read, update, delete and import a MySQL user."""

    def create(self, resource: UserResource, db: "DatabaseHandle") -> str:
        """Create the user and set the resource id.

        Validation happens before any statement is issued; on failure the
        resource id is left untouched.

        Returns:
            The id of the created user.
        """
        spec = resource.spec
        validate_auth_plugin(spec)

        statement = build_create_user(spec)
        logger.debug(f"Executing statement: {statement}")
        db.execute(statement)

        resource.id = encode_user_id(spec.name, spec.host)
        logger.info(f"Created MySQL user {resource.id}")
        return resource.id

    def update(self, resource: UserResource, conf: ProviderConfiguration) -> None:
        """Rotate the user password if one of the password fields changed.

        Users managed by an auth plugin are never rotated.
        """
        spec = resource.spec
        if spec.auth_plugin:
            # nothing to change, return
            return

        credential = resource.changes.changed_credential(spec)
        if credential is None:
            return

        dialect = select_password_dialect(conf.server_version)
        statement = build_password_change(spec, credential.value, dialect)
        logger.debug(f"Executing statement: {statement}")
        conf.db.execute(statement)
        logger.info(
            f"Updated password of MySQL user {spec.name}@{spec.host}"
            f" from {credential.source.value}"
        )

    def read(self, resource: UserResource, db: "DatabaseHandle") -> None:
        """Clear the resource id if no account with the user name exists."""
        statement = build_read_user(resource.spec.name)
        logger.debug(f"Executing statement: {statement}")

        if not db.query(statement):
            logger.warning(f"MySQL user {resource.id or resource.spec.name} not found")
            resource.id = ""

    def delete(self, resource: UserResource, db: "DatabaseHandle") -> None:
        """Drop the user, clearing the resource id only once the drop succeeded."""
        statement = build_drop_user(resource.spec)
        logger.debug(f"Executing statement: {statement}")
        db.execute(statement)

        logger.info(f"Dropped MySQL user {resource.spec.name}@{resource.spec.host}")
        resource.id = ""

    def import_user(self, resource: UserResource) -> UserResource:
        """Populate user name and host from the resource id.

        A changed `plaintext_password` is carried over as is.

        Raises:
            MySQLUserIdFormatError: if the id is not in USER@HOST format.
        """
        name, host = decode_user_id(resource.id)

        spec = UserSpec(name=name, host=host, auth_plugin=resource.spec.auth_plugin)
        changes = ChangeSet()
        if resource.changes.plaintext_password:
            spec.plaintext_password = resource.spec.plaintext_password
            changes.plaintext_password = True

        return UserResource(spec=spec, id=resource.id, changes=changes)
