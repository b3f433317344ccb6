# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import os
from collections.abc import Awaitable, Callable, Mapping
from datetime import UTC, datetime
from typing import Any
from unittest.mock import patch

import pytest
from sigv4_signers import ChecksumPolicy, SignatureLocation

from subgraph_sigv4 import ConfigurationError, PluginConfig, SigningConfig
from subgraph_sigv4.config import (
    DEFAULT_SERVICE_NAME,
    SOURCE_CONSTRUCTOR,
    SOURCE_DEFAULT,
    SOURCE_ENVIRONMENT,
    ConfigValue,
)


def _environment(
    values: Mapping[str, str] | None = None,
) -> Callable[[], Awaitable[Mapping[str, str]]]:
    async def loader() -> Mapping[str, str]:
        return values or {}

    return loader


async def _resolved(**kwargs: Any) -> SigningConfig:
    config = SigningConfig(**kwargs)
    await config.resolve(environment_loader=_environment())
    return config


class TestSigningConfig:
    @pytest.mark.asyncio
    async def test_basic_resolve(self) -> None:
        config = SigningConfig(region="us-east-1")
        await config.resolve()
        assert config.resolved
        assert config.region == "us-east-1"
        assert config.get_config_value_object("region").source == SOURCE_CONSTRUCTOR

    @pytest.mark.asyncio
    async def test_resolve_with_defaults(self) -> None:
        config = await _resolved()
        assert config.access_key_id is None
        assert config.secret_access_key is None
        assert config.session_token is None
        assert config.region is None
        assert config.service_name == DEFAULT_SERVICE_NAME == "execute-api"
        assert config.checksum_policy is ChecksumPolicy.NO_CHECKSUM
        assert config.signature_location is SignatureLocation.HEADERS
        assert config.error_type_header == "x-error-type"
        assert config.get_config_value_object("service_name").source == SOURCE_DEFAULT

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "field_name,env_var,value",
        [
            ("access_key_id", "AWS_ACCESS_KEY_ID", "AKIATEST"),
            ("secret_access_key", "AWS_SECRET_ACCESS_KEY", "secret123"),
            ("session_token", "AWS_SESSION_TOKEN", "token456"),
            ("region", "AWS_REGION", "us-west-2"),
        ],
    )
    async def test_environment_precedence(
        self, field_name: str, env_var: str, value: str
    ) -> None:
        with patch.dict(os.environ, {env_var: value}, clear=False):
            config = SigningConfig()
            await config.resolve()
            assert getattr(config, field_name) == value
            assert (
                config.get_config_value_object(field_name).source == SOURCE_ENVIRONMENT
            )

    @pytest.mark.asyncio
    async def test_constructor_overrides_environment(self) -> None:
        config = SigningConfig(region="eu-west-1", session_token=None)
        await config.resolve(
            environment_loader=_environment(
                {"AWS_REGION": "us-west-2", "AWS_SESSION_TOKEN": "from-env"}
            )
        )
        assert config.region == "eu-west-1"
        assert config.session_token is None
        assert (
            config.get_config_value_object("session_token").source
            == SOURCE_CONSTRUCTOR
        )

    @pytest.mark.asyncio
    async def test_resolve_only_once(self) -> None:
        config = await _resolved()
        with pytest.raises(RuntimeError):
            await config.resolve(environment_loader=_environment())

    def test_access_before_resolve(self) -> None:
        config = SigningConfig(region="us-east-1")
        assert not config.resolved
        with pytest.raises(RuntimeError):
            config.region

    @pytest.mark.asyncio
    async def test_values_are_read_only(self) -> None:
        config = await _resolved(region="us-east-1")
        with pytest.raises(AttributeError):
            config.region = "us-west-2"  # type: ignore[misc]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"region": 5},
            {"service_name": None},
            {"access_key_id": ["AKID"]},
            {"error_type_header": b"x-error-type"},
        ],
    )
    async def test_type_mismatch(self, kwargs: dict[str, Any]) -> None:
        with pytest.raises(TypeError):
            await _resolved(**kwargs)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "value,expected",
        [
            (ChecksumPolicy.X_AMZ_SHA256, ChecksumPolicy.X_AMZ_SHA256),
            ("x-amz-sha256", ChecksumPolicy.X_AMZ_SHA256),
            ("X_AMZ_SHA256", ChecksumPolicy.X_AMZ_SHA256),
            ("XAmzSha256", ChecksumPolicy.X_AMZ_SHA256),
            ("none", ChecksumPolicy.NO_CHECKSUM),
            ("NoChecksum", ChecksumPolicy.NO_CHECKSUM),
        ],
    )
    async def test_checksum_policy_conversion(
        self, value: Any, expected: ChecksumPolicy
    ) -> None:
        config = await _resolved(checksum_policy=value)
        assert config.checksum_policy is expected

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("headers", SignatureLocation.HEADERS),
            ("query-string", SignatureLocation.QUERY_STRING),
            ("QUERY_STRING", SignatureLocation.QUERY_STRING),
            ("QueryString", SignatureLocation.QUERY_STRING),
        ],
    )
    async def test_signature_location_conversion(
        self, value: str, expected: SignatureLocation
    ) -> None:
        config = await _resolved(signature_location=value)
        assert config.signature_location is expected

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"checksum_policy": "md5"},
            {"checksum_policy": 1},
            {"signature_location": "body"},
        ],
    )
    async def test_invalid_enum_values(self, kwargs: dict[str, Any]) -> None:
        with pytest.raises(ConfigurationError):
            await _resolved(**kwargs)

    @pytest.mark.asyncio
    async def test_identity(self) -> None:
        config = await _resolved(
            access_key_id="AKIDEXAMPLE",
            secret_access_key="secret",
            session_token="",
        )
        identity = config.identity()
        assert identity.access_key_id == "AKIDEXAMPLE"
        assert identity.secret_access_key == "secret"
        assert identity.session_token is None

    @pytest.mark.asyncio
    async def test_identity_requires_credentials(self) -> None:
        config = await _resolved(secret_access_key="do-not-leak")
        with pytest.raises(ConfigurationError) as exc_info:
            config.identity()
        assert "access_key_id" in str(exc_info.value)
        assert "secret_access_key" not in str(exc_info.value)
        assert "do-not-leak" not in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_settings(self) -> None:
        config = await _resolved(
            region="us-east-1",
            checksum_policy="x-amz-sha256",
            signature_location="query-string",
        )
        settings = config.settings()
        assert settings.region == "us-east-1"
        assert settings.service_name == "execute-api"
        assert settings.checksum_policy is ChecksumPolicy.X_AMZ_SHA256
        assert settings.signature_location is SignatureLocation.QUERY_STRING

    @pytest.mark.asyncio
    async def test_settings_with_clock(self) -> None:
        def clock() -> datetime:
            return datetime(2015, 8, 30, tzinfo=UTC)

        config = await _resolved(region="us-east-1")
        assert config.settings(clock=clock).clock is clock

    @pytest.mark.asyncio
    async def test_settings_require_region(self) -> None:
        config = await _resolved()
        with pytest.raises(ConfigurationError, match="region"):
            config.settings()

    def test_config_value_repr_hides_value(self) -> None:
        value = ConfigValue("do-not-leak", SOURCE_CONSTRUCTOR)
        assert "do-not-leak" not in repr(value)
        assert value.value == "do-not-leak"


class TestPluginConfig:
    def test_all_and_subgraphs(self) -> None:
        config = PluginConfig.from_mapping(
            {
                "all": {"region": "us-east-1"},
                "subgraphs": {
                    "products": {"region": "eu-west-1", "service_name": "lambda"}
                },
            }
        )
        assert config.all is not None
        assert set(config.subgraphs) == {"products"}
        assert config.for_subgraph("products") is config.subgraphs["products"]
        assert config.for_subgraph("reviews") is config.all
        assert list(config.configs()) == [None, "products"]

    @pytest.mark.asyncio
    async def test_subgraph_entry_is_not_merged_with_all(self) -> None:
        config = PluginConfig.from_mapping(
            {
                "all": {"region": "us-east-1", "access_key_id": "AKIDALL"},
                "subgraphs": {"products": {"region": "eu-west-1"}},
            }
        )
        await config.resolve(environment_loader=_environment())
        products = config.for_subgraph("products")
        assert products is not None
        assert products.region == "eu-west-1"
        assert products.access_key_id is None

    def test_subgraphs_only(self) -> None:
        config = PluginConfig.from_mapping(
            {"subgraphs": {"products": {"region": "eu-west-1"}}}
        )
        assert config.all is None
        assert config.for_subgraph("reviews") is None
        assert list(config.configs()) == ["products"]

    @pytest.mark.asyncio
    async def test_legacy_flat_form(self) -> None:
        config = PluginConfig.from_mapping(
            {"access_key": "AKIDLEGACY", "secret_key": "secret", "region": "us-east-1"}
        )
        assert config.subgraphs == {}
        await config.resolve(environment_loader=_environment())
        assert config.all is not None
        assert config.all.access_key_id == "AKIDLEGACY"
        assert config.all.secret_access_key == "secret"
        assert config.all.region == "us-east-1"

    @pytest.mark.asyncio
    async def test_legacy_block_with_enabled_flag(self) -> None:
        config = PluginConfig.from_mapping(
            {
                "access_key": "myAWSid",
                "secret_key": "secret",
                "region": "us-east-1",
                "enabled": True,
            }
        )
        await config.resolve(environment_loader=_environment())
        assert config.all is not None
        assert config.all.access_key_id == "myAWSid"
        assert config.all.region == "us-east-1"

    def test_legacy_block_disabled(self) -> None:
        config = PluginConfig.from_mapping(
            {
                "access_key": "myAWSid",
                "secret_key": "secret",
                "region": "us-east-1",
                "enabled": False,
            }
        )
        assert config.all is None
        assert config.configs() == {}

    @pytest.mark.parametrize(
        "mapping",
        [
            {"all": {"region": "us-east-1"}, "extra": {}},
            {"all": {"regoin": "us-east-1"}},
            {"subgraphs": {"products": {"secret": "x"}}},
            {"subgraphs": ["products"]},
            {"all": "us-east-1"},
            {"access_key": "AKID", "secret_key": "secret", "unknown": "value"},
            {"access_key": "AKID", "secret_key": "secret", "enabled": "yes"},
        ],
    )
    def test_malformed_configuration(self, mapping: dict[str, Any]) -> None:
        with pytest.raises(ConfigurationError):
            PluginConfig.from_mapping(mapping)

    @pytest.mark.asyncio
    async def test_resolve_skips_resolved_entries(self) -> None:
        config = PluginConfig.from_mapping(
            {
                "all": {"region": "us-east-1"},
                "subgraphs": {"products": {"region": "eu-west-1"}},
            }
        )
        await config.subgraphs["products"].resolve(environment_loader=_environment())
        await config.resolve(environment_loader=_environment())
        assert config.all is not None
        assert config.all.resolved
        assert config.subgraphs["products"].resolved
