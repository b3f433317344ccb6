# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0


class BaseSigningException(Exception):
    """Top-level exception to capture signer errors."""


class SignError(BaseSigningException):
    """A signature could not be produced.

    Signing errors are never retryable: the same inputs will fail the same way.
    """


class MissingRequiredFieldError(SignError, ValueError):
    """A credential or scope value required by SigV4 is absent or empty."""


class ClockUnavailableError(SignError):
    """The configured time source could not produce a signing timestamp."""


class ExpiredIdentityError(SignError, ValueError):
    """The identity expired before the signing timestamp."""
