# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import json
from dataclasses import dataclass, field

from sigv4_signers import Field, Fields

from .context import TypedProperties
from .types import SubgraphResponse


class SubgraphSigningError(Exception):
    """Base exception type for all exceptions raised by subgraph-sigv4."""


class BodySerializationError(SubgraphSigningError):
    """The request body could not be turned into canonical bytes."""


class ConfigurationError(SubgraphSigningError, ValueError):
    """Signing configuration is missing or malformed."""


@dataclass(kw_only=True)
class UnauthorizedError(SubgraphSigningError):
    """The uniform error returned when a request could not be signed or the subgraph
    rejected its signature."""

    message: str = field(kw_only=False)
    """A human readable message safe to return to the caller."""

    status_code: int = 401

    context: TypedProperties = field(default_factory=TypedProperties)
    """The context of the request the error belongs to."""

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def as_response(self) -> SubgraphResponse:
        """Render the error as ``{"errors": [{"message": ...}]}``."""
        body = json.dumps({"errors": [{"message": self.message}]}).encode("utf-8")
        return SubgraphResponse(
            status=self.status_code,
            fields=Fields(
                [
                    Field(name="Content-Type", values=["application/json"]),
                    Field(name="Content-Length", values=[str(len(body))]),
                ]
            ),
            body=body,
            reason="Unauthorized",
            context=self.context,
        )
