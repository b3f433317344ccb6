# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import os
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Literal

from sigv4_signers import (
    ChecksumPolicy,
    SignatureLocation,
    SigningIdentity,
    SigningSettings,
)

from .classifiers import ERROR_TYPE_HEADER
from .exceptions import ConfigurationError

SOURCE_CONSTRUCTOR = "constructor"
SOURCE_ENVIRONMENT = "environment"
SOURCE_DEFAULT = "default"

SourceType = Literal["constructor", "environment", "default"]

DEFAULT_SERVICE_NAME = "execute-api"


class ConfigValue:
    """Configuration value with metadata about its source"""

    def __init__(self, value: Any, source: SourceType):
        self.value = value
        self.source = source

    def __repr__(self) -> str:
        return f"ConfigValue(source={self.source!r})"


class SigningConfig:
    """Signing configuration for one route, with precedence-based resolution.

    Each field is taken from the first of these that provides it: the constructor,
    the environment, the field default. The constructor uses the Ellipsis sentinel
    (``...``) to tell "not provided" apart from "explicitly set to None".

    Values are read-only once resolved. The signing identity and settings built from
    them are immutable and safe to share between requests.
    """

    CONFIG_FIELDS: ClassVar[dict[str, dict[str, Any]]] = {
        "access_key_id": {
            "env_var": "AWS_ACCESS_KEY_ID",
            "default": None,
            "type": str | None,
        },
        "secret_access_key": {
            "env_var": "AWS_SECRET_ACCESS_KEY",
            "default": None,
            "type": str | None,
        },
        "session_token": {
            "env_var": "AWS_SESSION_TOKEN",
            "default": None,
            "type": str | None,
        },
        "region": {
            "env_var": "AWS_REGION",
            "default": None,
            "type": str | None,
        },
        "service_name": {
            "default": DEFAULT_SERVICE_NAME,
            "type": str,
        },
        "checksum_policy": {
            "default": ChecksumPolicy.NO_CHECKSUM,
            "converter": ChecksumPolicy,
        },
        "signature_location": {
            "default": SignatureLocation.HEADERS,
            "converter": SignatureLocation,
        },
        "error_type_header": {
            "default": ERROR_TYPE_HEADER,
            "type": str,
        },
    }

    def __init__(
        self,
        *,
        access_key_id: str | None = ...,  # type: ignore[assignment]
        secret_access_key: str | None = ...,  # type: ignore[assignment]
        session_token: str | None = ...,  # type: ignore[assignment]
        region: str | None = ...,  # type: ignore[assignment]
        service_name: str = ...,  # type: ignore[assignment]
        checksum_policy: ChecksumPolicy | str = ...,  # type: ignore[assignment]
        signature_location: SignatureLocation | str = ...,  # type: ignore[assignment]
        error_type_header: str = ...,  # type: ignore[assignment]
    ):
        self._constructor_values = {
            k: v for k, v in locals().items() if k != "self" and v is not ...
        }
        self._values: dict[str, ConfigValue] = {}
        self._resolved = False

    @property
    def resolved(self) -> bool:
        return self._resolved

    async def resolve(
        self,
        *,
        environment_loader: Callable[[], Awaitable[Mapping[str, str]]] | None = None,
    ) -> None:
        """Resolve configuration from all sources.

        :param environment_loader: Custom environment loader function.
        """
        if self._resolved:
            raise RuntimeError(
                "Config has already been resolved. Multiple calls to resolve() are "
                "not allowed."
            )

        env_values = await (environment_loader or self._load_environment_values)()
        for field_name, field_info in self.CONFIG_FIELDS.items():
            self._values[field_name] = self._resolve_field(
                field_name, field_info, env_values
            )
        self._resolved = True

    async def _load_environment_values(self) -> Mapping[str, str]:
        return os.environ

    def _resolve_field(
        self,
        field_name: str,
        field_info: dict[str, Any],
        env_values: Mapping[str, str],
    ) -> ConfigValue:
        env_var = field_info.get("env_var")
        if field_name in self._constructor_values:
            value = self._constructor_values[field_name]
            source: SourceType = SOURCE_CONSTRUCTOR
        elif env_var and env_var in env_values:
            value = env_values[env_var]
            source = SOURCE_ENVIRONMENT
        else:
            value = field_info["default"]
            source = SOURCE_DEFAULT

        if converter := field_info.get("converter"):
            return ConfigValue(_convert_enum(converter, value, field_name), source)

        expected_type = field_info["type"]
        if not isinstance(value, expected_type):
            expected_name = getattr(expected_type, "__name__", str(expected_type))
            raise TypeError(
                f"{field_name} must be {expected_name}, got {type(value).__name__}"
            )
        return ConfigValue(value, source)

    def get_config_value_object(self, field_name: str) -> ConfigValue:
        """Get the raw ConfigValue object for a field"""
        if not self._resolved:
            raise RuntimeError("Config must be resolved before accessing values")
        return self._values[field_name]

    def _get(self, field_name: str) -> Any:
        return self.get_config_value_object(field_name).value

    @property
    def access_key_id(self) -> str | None:
        return self._get("access_key_id")

    @property
    def secret_access_key(self) -> str | None:
        return self._get("secret_access_key")

    @property
    def session_token(self) -> str | None:
        return self._get("session_token")

    @property
    def region(self) -> str | None:
        return self._get("region")

    @property
    def service_name(self) -> str:
        return self._get("service_name")

    @property
    def checksum_policy(self) -> ChecksumPolicy:
        return self._get("checksum_policy")

    @property
    def signature_location(self) -> SignatureLocation:
        return self._get("signature_location")

    @property
    def error_type_header(self) -> str:
        return self._get("error_type_header")

    def identity(self) -> SigningIdentity:
        """Build the signing identity.

        :raises ConfigurationError: If the access key id or secret key is missing.
        """
        self._require("access_key_id", "secret_access_key")
        assert self.access_key_id is not None
        assert self.secret_access_key is not None
        return SigningIdentity(
            access_key_id=self.access_key_id,
            secret_access_key=self.secret_access_key,
            session_token=self.session_token or None,
        )

    def settings(
        self, *, clock: Callable[[], datetime] | None = None
    ) -> SigningSettings:
        """Build the signing settings.

        :param clock: Overrides the wall clock used for signing timestamps.
        :raises ConfigurationError: If the region or service name is missing.
        """
        self._require("region", "service_name")
        assert self.region is not None
        overrides: dict[str, Any] = {"clock": clock} if clock is not None else {}
        return SigningSettings(
            region=self.region,
            service_name=self.service_name,
            checksum_policy=self.checksum_policy,
            signature_location=self.signature_location,
            **overrides,
        )

    def _require(self, *field_names: str) -> None:
        missing = [name for name in field_names if not self._get(name)]
        if missing:
            raise ConfigurationError(
                f"Missing required signing configuration: {', '.join(missing)}"
            )


ENTRY_KEYS = frozenset(SigningConfig.CONFIG_FIELDS)

# Keys of the original single-route plugin configuration.
LEGACY_KEYS: dict[str, str] = {
    "access_key": "access_key_id",
    "secret_key": "secret_access_key",
    "region": "region",
}


@dataclass(kw_only=True)
class PluginConfig:
    """Signing configuration for every subgraph behind the gateway.

    ``all`` applies to any subgraph without an entry in ``subgraphs``. A subgraph
    entry replaces ``all`` entirely, it is not merged with it.
    """

    all: SigningConfig | None = None
    subgraphs: dict[str, SigningConfig] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "PluginConfig":
        """Build a config from an already parsed plugin configuration block.

        Accepts ``{"all": {...}, "subgraphs": {"name": {...}}}`` as well as the flat
        ``{"access_key": ..., "secret_key": ..., "region": ..., "enabled": ...}``
        form, which is treated as ``all``. A flat block with ``enabled`` set to false
        configures no signing at all.

        :raises ConfigurationError: If the block has unknown or malformed entries.
        """
        if not {"all", "subgraphs"} & mapping.keys():
            entry = {LEGACY_KEYS.get(key, key): value for key, value in mapping.items()}
            enabled = entry.pop("enabled", True)
            if not isinstance(enabled, bool):
                raise ConfigurationError("'enabled' must be a boolean")
            if not enabled:
                return cls()
            return cls(all=_entry_to_config(entry, "plugin"))

        unknown = mapping.keys() - {"all", "subgraphs"}
        if unknown:
            raise ConfigurationError(
                f"Unknown signing configuration keys: {', '.join(sorted(unknown))}"
            )

        all_entry = mapping.get("all")
        subgraph_entries = mapping.get("subgraphs") or {}
        if not isinstance(subgraph_entries, Mapping):
            raise ConfigurationError("'subgraphs' must be a mapping of subgraph names")
        return cls(
            all=_entry_to_config(all_entry, "all") if all_entry is not None else None,
            subgraphs={
                str(name): _entry_to_config(entry, f"subgraphs.{name}")
                for name, entry in subgraph_entries.items()
            },
        )

    def configs(self) -> dict[str | None, SigningConfig]:
        """All configured routes, keyed by subgraph name, ``None`` for ``all``."""
        routes: dict[str | None, SigningConfig] = {}
        if self.all is not None:
            routes[None] = self.all
        routes.update(self.subgraphs)
        return routes

    def for_subgraph(self, name: str) -> SigningConfig | None:
        return self.subgraphs.get(name, self.all)

    async def resolve(
        self,
        *,
        environment_loader: Callable[[], Awaitable[Mapping[str, str]]] | None = None,
    ) -> None:
        """Resolve every route that has not been resolved yet."""
        for config in self.configs().values():
            if not config.resolved:
                await config.resolve(environment_loader=environment_loader)


def _entry_to_config(entry: Any, path: str) -> SigningConfig:
    if not isinstance(entry, Mapping):
        raise ConfigurationError(f"Signing configuration '{path}' must be a mapping")
    unknown = entry.keys() - ENTRY_KEYS
    if unknown:
        raise ConfigurationError(
            f"Unknown keys in signing configuration '{path}': "
            f"{', '.join(sorted(unknown))}"
        )
    return SigningConfig(**entry)


def _convert_enum[E: Enum](enum_type: type[E], value: Any, field_name: str) -> E:
    if isinstance(value, enum_type):
        return value
    if isinstance(value, str):
        # Accepts the value ("x-amz-sha256") as well as the member name in any
        # casing ("X_AMZ_SHA256", "XAmzSha256").
        normalized = value.strip().lower().replace("_", "-")
        compact = normalized.replace("-", "")
        for member in enum_type:
            if normalized == member.value or compact == member.name.lower().replace(
                "_", ""
            ):
                return member
    choices = ", ".join(repr(member.value) for member in enum_type)
    raise ConfigurationError(f"{field_name} must be one of {choices}, got {value!r}")
