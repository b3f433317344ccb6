# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from sigv4_signers import URI, Fields

from .context import TypedProperties


@dataclass(kw_only=True)
class SubgraphRequest:
    """A request on its way from the gateway to a subgraph."""

    method: str
    destination: URI
    fields: Fields = field(default_factory=Fields)

    body: Any = field(repr=False, default=None)
    """The structured request body, for example a GraphQL request document.

    Signing never replaces this value. Transports serialize it with the same
    serializer the signer used.
    """

    context: TypedProperties = field(default_factory=TypedProperties)
    """Context and trace identifiers of the inbound request."""


@dataclass(kw_only=True)
class SubgraphResponse:
    """A response returned to the gateway, from a subgraph or fabricated locally."""

    status: int
    """The 3 digit response status code (1xx, 2xx, 3xx, 4xx, 5xx)."""

    fields: Fields = field(default_factory=Fields)
    body: Any = field(repr=False, default=b"")
    reason: str | None = None
    context: TypedProperties = field(default_factory=TypedProperties)

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300


type Forward = Callable[[SubgraphRequest], Awaitable[SubgraphResponse]]
"""The call that transmits a request to its subgraph."""
