# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Self

from sigv4_signers import SigV4Signer, mask_access_key

from .classifiers import ResponseClassifier
from .config import PluginConfig
from .context import SUBGRAPH_NAME
from .interceptors import SigningInterceptor
from .serialization import JSONBodySerializer
from .types import Forward, SubgraphRequest, SubgraphResponse

logger = logging.getLogger(__name__)


class SigningPipeline:
    """Sign, forward, then classify, for every request sent through it.

    Requests are processed independently, so ``send`` may be awaited concurrently
    from any number of tasks.
    """

    def __init__(
        self,
        interceptor: SigningInterceptor,
        forward: Forward,
        *,
        classifier: ResponseClassifier | None = None,
    ) -> None:
        self._interceptor = interceptor
        self._forward = forward
        self._classifier = classifier or ResponseClassifier()

    async def send(self, request: SubgraphRequest) -> SubgraphResponse:
        forwarded = False

        async def _forward(signed: SubgraphRequest) -> SubgraphResponse:
            nonlocal forwarded
            forwarded = True
            return await self._forward(signed)

        response = await self._interceptor.intercept(request, _forward)
        if not forwarded:
            # Already the uniform error response.
            return response
        return self._classifier.classify(response, context=request.context)

    async def __call__(self, request: SubgraphRequest) -> SubgraphResponse:
        return await self.send(request)


class SigningPlugin:
    """Builds a signing pipeline for each subgraph the gateway routes to.

    Identity and settings objects are created once, when the plugin is built, and
    shared read-only by every pipeline and request.
    """

    def __init__(
        self,
        config: PluginConfig,
        *,
        signer: SigV4Signer | None = None,
        serializer: JSONBodySerializer | None = None,
    ) -> None:
        self._signer = signer or SigV4Signer()
        self._serializer = serializer or JSONBodySerializer()
        self._interceptors: dict[str | None, SigningInterceptor] = {}
        self._classifiers: dict[str | None, ResponseClassifier] = {}

        for name, route in config.configs().items():
            identity = route.identity()
            logger.info(
                "Signing requests to %s with access key %s in %s for service %s",
                f"subgraph {name!r}" if name else "all subgraphs",
                mask_access_key(identity.access_key_id),
                route.region,
                route.service_name,
            )
            self._interceptors[name] = SigningInterceptor(
                identity,
                route.settings(),
                signer=self._signer,
                serializer=self._serializer,
            )
            self._classifiers[name] = ResponseClassifier(
                error_type_header=route.error_type_header
            )

    @classmethod
    async def create(
        cls,
        config: PluginConfig,
        *,
        environment_loader: Callable[[], Awaitable[Mapping[str, str]]] | None = None,
        signer: SigV4Signer | None = None,
        serializer: JSONBodySerializer | None = None,
    ) -> Self:
        """Resolve ``config`` and build the plugin from it."""
        await config.resolve(environment_loader=environment_loader)
        return cls(config, signer=signer, serializer=serializer)

    @property
    def serializer(self) -> JSONBodySerializer:
        """The serializer whose output is signed. Transports must send its output."""
        return self._serializer

    def subgraph_service(self, name: str, forward: Forward) -> Forward:
        """Wrap the forwarding call of subgraph ``name``.

        Subgraphs without any signing configuration get ``forward`` back unwrapped.
        """
        key: str | None = name if name in self._interceptors else None
        interceptor = self._interceptors.get(key)
        if interceptor is None:
            logger.debug("No signing configured for subgraph %r", name)
            return forward

        pipeline = SigningPipeline(
            interceptor, forward, classifier=self._classifiers[key]
        )

        async def _send(request: SubgraphRequest) -> SubgraphResponse:
            if SUBGRAPH_NAME not in request.context:
                request.context[SUBGRAPH_NAME] = name
            return await pipeline.send(request)

        return _send
