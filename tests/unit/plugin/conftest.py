# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import pytest
from sigv4_signers import URI, Fields, SigningIdentity, SigningSettings

from subgraph_sigv4 import SubgraphRequest, TypedProperties
from subgraph_sigv4.context import TRACE_ID

SIGNING_DATE = datetime(2015, 8, 30, 12, 36, 0, tzinfo=UTC)
SECRET_KEY = "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY"


@pytest.fixture(scope="module")
def identity() -> SigningIdentity:
    return SigningIdentity(access_key_id="AKIDEXAMPLE", secret_access_key=SECRET_KEY)


@pytest.fixture(scope="module")
def settings() -> SigningSettings:
    return SigningSettings(
        region="us-east-1",
        service_name="execute-api",
        clock=lambda: SIGNING_DATE,
    )


@pytest.fixture
def make_request() -> Callable[..., SubgraphRequest]:
    def _make_request(
        body: Any = None,
        *,
        url: str = "https://products.example.com/graphql",
        headers: list[tuple[str, str]] | None = None,
    ) -> SubgraphRequest:
        context = TypedProperties()
        context[TRACE_ID] = "1-5759e988-bd862e3fe1be46a994272793"
        return SubgraphRequest(
            method="POST",
            destination=URI.from_string(url),
            fields=Fields.from_tuples(headers or [("Accept", "application/json")]),
            body=body if body is not None else {"query": "{ me { id } }"},
            context=context,
        )

    return _make_request

