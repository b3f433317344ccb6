# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import logging

from sigv4_signers import (
    Field,
    InstructionLocation,
    SignableRequest,
    SigningIdentity,
    SigningOutput,
    SigningSettings,
    SigV4Signer,
)
from sigv4_signers.exceptions import SignError
from sigv4_signers.signers import append_query_params

from .context import SUBGRAPH_NAME
from .exceptions import BodySerializationError, UnauthorizedError
from .serialization import JSONBodySerializer
from .types import Forward, SubgraphRequest, SubgraphResponse

logger = logging.getLogger(__name__)

SERIALIZATION_FAILED_MESSAGE = "Failed to serialize subgraph request body for signing"
SIGNING_FAILED_MESSAGE = "Failed to sign subgraph request"


class SigningInterceptor:
    """Signs subgraph requests before they are forwarded.

    The interceptor fails closed: a request whose body cannot be serialized, or for
    which no signature can be produced, is answered with a 401 and never forwarded.

    Identity and settings are shared, read-only, by every request passing through
    the interceptor. All other state lives for a single call.
    """

    def __init__(
        self,
        identity: SigningIdentity,
        settings: SigningSettings,
        *,
        signer: SigV4Signer | None = None,
        serializer: JSONBodySerializer | None = None,
    ) -> None:
        self._identity = identity
        self._settings = settings
        self._signer = signer or SigV4Signer()
        self._serializer = serializer or JSONBodySerializer()

    @property
    def serializer(self) -> JSONBodySerializer:
        return self._serializer

    async def intercept(
        self, request: SubgraphRequest, forward: Forward
    ) -> SubgraphResponse:
        """Sign ``request`` and pass it to ``forward``.

        :param request: The outgoing request. Its fields are updated in place.
        :param forward: The call that transmits the request.
        :returns: The forwarded response, unchanged, or a 401 response if the
            request could not be signed.
        """
        try:
            self.sign_request(request)
        except BodySerializationError as e:
            logger.warning("Not forwarding request to %s: %s", _describe(request), e)
            return UnauthorizedError(
                SERIALIZATION_FAILED_MESSAGE, context=request.context
            ).as_response()
        except SignError as e:
            logger.warning("Not forwarding request to %s: %s", _describe(request), e)
            return UnauthorizedError(
                SIGNING_FAILED_MESSAGE, context=request.context
            ).as_response()

        logger.debug("Forwarding signed request to %s", _describe(request))
        response = await forward(request)
        logger.debug(
            "Received response from %s with status %s",
            _describe(request),
            response.status,
        )
        return response

    def sign_request(self, request: SubgraphRequest) -> SubgraphRequest:
        """Sign ``request`` in place and return it.

        Only header fields and, for query string signing, the destination query
        change. The structured body is left as it was.

        :raises BodySerializationError: If the body cannot be serialized.
        :raises SignError: If no signature can be produced.
        """
        body = self._serializer.serialize(request.body)
        logger.debug(
            "Signing %s request to %s with %d byte body",
            request.method,
            _describe(request),
            len(body),
        )
        output = self._signer.sign(
            identity=self._identity,
            settings=self._settings,
            request=SignableRequest(
                method=request.method,
                destination=request.destination,
                fields=request.fields,
                body=body,
            ),
        )
        self._apply(request, output)
        return request

    def _apply(self, request: SubgraphRequest, output: SigningOutput) -> None:
        # Build everything first so the request is only touched by the two
        # assignments at the end.
        fields = request.fields.copy()
        query_params: list[tuple[str, str]] = []
        for instruction in output.instructions:
            match instruction.location:
                case InstructionLocation.HEADER:
                    fields.set_field(
                        Field(name=instruction.name, values=[instruction.value])
                    )
                case InstructionLocation.QUERY:
                    query_params.append((instruction.name, instruction.value))
        destination = append_query_params(request.destination, query_params)

        request.fields = fields
        request.destination = destination


def _describe(request: SubgraphRequest) -> str:
    name = request.context.get(SUBGRAPH_NAME)
    # The query is left out, it may carry a presigned credential.
    dest = request.destination
    uri = f"{dest.scheme}://{dest.netloc}{dest.path or '/'}"
    return f"subgraph {name!r} ({uri})" if name else uri
