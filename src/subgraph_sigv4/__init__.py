# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""SigV4 signing for requests a GraphQL gateway forwards to its subgraphs."""

from .classifiers import ERROR_TYPE_HEADER, ResponseClassifier
from .config import PluginConfig, SigningConfig
from .context import SUBGRAPH_NAME, TRACE_ID, PropertyKey, TypedProperties
from .exceptions import (
    BodySerializationError,
    ConfigurationError,
    SubgraphSigningError,
    UnauthorizedError,
)
from .interceptors import SigningInterceptor
from .pipeline import SigningPipeline, SigningPlugin
from .serialization import JSONBodySerializer
from .types import Forward, SubgraphRequest, SubgraphResponse

__version__ = "0.1.0"

__all__ = (
    "ERROR_TYPE_HEADER",
    "SUBGRAPH_NAME",
    "TRACE_ID",
    "BodySerializationError",
    "ConfigurationError",
    "Forward",
    "JSONBodySerializer",
    "PluginConfig",
    "PropertyKey",
    "ResponseClassifier",
    "SigningConfig",
    "SigningInterceptor",
    "SigningPipeline",
    "SigningPlugin",
    "SubgraphRequest",
    "SubgraphResponse",
    "SubgraphSigningError",
    "TypedProperties",
    "UnauthorizedError",
)
