# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""Stand-alone AWS Signature Version 4 signing for outbound HTTP requests."""

from __future__ import annotations

from ._http import URI, Field, FieldPosition, Fields, SignableRequest
from ._identity import SigningIdentity, mask_access_key
from .signers import (
    ChecksumPolicy,
    InstructionLocation,
    SignatureLocation,
    SigningInstruction,
    SigningOutput,
    SigningSettings,
    SigV4Signer,
)

__license__ = "Apache-2.0"
__version__ = "0.1.0"

__all__ = (
    "URI",
    "ChecksumPolicy",
    "Field",
    "FieldPosition",
    "Fields",
    "InstructionLocation",
    "SigV4Signer",
    "SignableRequest",
    "SignatureLocation",
    "SigningIdentity",
    "SigningInstruction",
    "SigningOutput",
    "SigningSettings",
    "mask_access_key",
)
