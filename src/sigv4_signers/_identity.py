# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
from dataclasses import dataclass
from datetime import UTC, datetime

from .interfaces import CredentialsIdentity


@dataclass(kw_only=True, frozen=True, repr=False)
class SigningIdentity(CredentialsIdentity):
    """Static credentials used to sign requests.

    Instances are immutable and may be shared between any number of concurrent
    signing calls. The secret key and session token never appear in ``repr``.
    """

    access_key_id: str
    secret_access_key: str
    session_token: str | None = None
    expiration: datetime | None = None

    def __post_init__(self) -> None:
        if self.expiration is not None:
            if self.expiration.tzinfo is None:
                expiration = self.expiration.replace(tzinfo=UTC)
            else:
                expiration = self.expiration.astimezone(UTC)
            object.__setattr__(self, "expiration", expiration)

    def expired_at(self, when: datetime) -> bool:
        """Whether the identity has expired at the given time."""
        return self.expiration is not None and when >= self.expiration

    def __repr__(self) -> str:
        return (
            f"SigningIdentity(access_key_id={mask_access_key(self.access_key_id)!r}, "
            f"session_token={'***' if self.session_token else None}, "
            f"expiration={self.expiration!r})"
        )


def mask_access_key(access_key_id: str | None) -> str:
    """Mask all but the first four characters of an access key id."""
    if not access_key_id:
        return ""
    return f"{access_key_id[:4]}{'*' * max(len(access_key_id) - 4, 0)}"
