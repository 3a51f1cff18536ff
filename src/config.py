#!/usr/bin/env python3
# Copyright 2023 Canonical Ltd.
# See LICENSE file for licensing details.

"""Structured configuration for the MySQL user charm."""
import logging
import re
from typing import Optional, Tuple

from pydantic import BaseModel, field_validator, model_validator

from constants import (
    AUTH_PLUGIN_CLAUSES,
    DEFAULT_HOST,
    DEFAULT_MYSQL_PORT,
    MYSQL_USERNAME_MAX_LENGTH,
)
from user_spec import UserSpec

logger = logging.getLogger(__name__)


class CharmConfig(BaseModel):
    """Manager for the structured configuration."""

    mysql_endpoint: str = f"localhost:{DEFAULT_MYSQL_PORT}"
    mysql_username: str = "root"
    mysql_password: Optional[str] = None
    user: Optional[str] = None
    host: str = DEFAULT_HOST
    plaintext_password: Optional[str] = None
    password: Optional[str] = None
    auth_plugin: Optional[str] = None

    @classmethod
    def from_charm_config(cls, config) -> "CharmConfig":
        """Build the model from the charm config, mapping option names to fields."""
        return cls(**{key.replace("-", "_"): value for key, value in config.items()})

    @field_validator("mysql_endpoint")
    @classmethod
    def endpoint_validator(cls, value: str) -> str:
        """Check endpoint is `host` or `host:port`."""
        matches = re.match(r"^([^:\s]+)(?::(\d+))?$", value)
        if not matches:
            raise ValueError("Endpoint must be in format HOST[:PORT]")

        if matches.group(2) and not 0 < int(matches.group(2)) < 65536:
            raise ValueError("Endpoint port must be between 1 and 65535")

        return value

    @field_validator("user")
    @classmethod
    def user_name_validator(cls, value: Optional[str]) -> Optional[str]:
        """Check user name is valid."""
        if value is not None and len(value) > MYSQL_USERNAME_MAX_LENGTH:
            raise ValueError(f"User name constrained to {MYSQL_USERNAME_MAX_LENGTH} characters")

        return value

    @field_validator("auth_plugin")
    @classmethod
    def auth_plugin_values(cls, value: Optional[str]) -> Optional[str]:
        """Check auth plugin is one of the supported plugins."""
        if value and value not in AUTH_PLUGIN_CLAUSES:
            raise ValueError(f"Value not one of {', '.join(repr(v) for v in AUTH_PLUGIN_CLAUSES)}")

        return value

    @field_validator("password")
    @classmethod
    def password_deprecated(cls, value: Optional[str]) -> Optional[str]:
        """Warn about the deprecated `password` option."""
        if value:
            logger.warning("`password` is deprecated, please use `plaintext-password` instead")

        return value

    @model_validator(mode="after")
    def conflicting_options(self) -> "CharmConfig":
        """Check options that cannot be set together."""
        if self.plaintext_password and self.password:
            raise ValueError("`password` conflicts with `plaintext-password`")

        if self.auth_plugin and (self.plaintext_password or self.password):
            raise ValueError("`auth-plugin` conflicts with `plaintext-password` and `password`")

        return self

    def endpoint_address(self) -> Tuple[str, int]:
        """Return host and port of the MySQL endpoint."""
        host, _, port = self.mysql_endpoint.partition(":")
        return host, int(port) if port else DEFAULT_MYSQL_PORT

    def user_spec(self) -> UserSpec:
        """Return the desired state of the managed user."""
        return UserSpec(
            name=self.user or "",
            host=self.host,
            plaintext_password=self.plaintext_password,
            password=self.password,
            auth_plugin=self.auth_plugin,
        )
