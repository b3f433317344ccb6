# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
from datetime import UTC, datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class Identity(Protocol):
    """An entity representing who is making the request."""

    expiration: datetime | None = None
    """The expiration time of the identity.

    If time zone is provided, it is updated to UTC. The value must always be in UTC.
    """

    @property
    def is_expired(self) -> bool:
        """Whether the identity is expired."""
        if self.expiration is None:
            return False
        return datetime.now(tz=UTC) >= self.expiration


@runtime_checkable
class CredentialsIdentity(Identity, Protocol):
    """Static credentials used to derive a SigV4 signing key."""

    access_key_id: str
    """A unique identifier for the signing principal."""

    secret_access_key: str
    """The secret used in conjunction with the access key ID to derive signing
    keys."""

    session_token: str | None = None
    """A temporary token used to specify the current session for the supplied
    credentials."""


class Clock(Protocol):
    """A source of the current time.

    Implementations must return promptly and should return timezone-aware
    datetimes. Naive values are interpreted as UTC.
    """

    def __call__(self) -> datetime: ...
