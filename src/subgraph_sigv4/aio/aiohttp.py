# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
from itertools import chain
from typing import Any

import aiohttp
from yarl import URL

from sigv4_signers import FieldPosition, Fields

from ..serialization import JSONBodySerializer
from ..types import SubgraphRequest, SubgraphResponse


class AIOHTTPForwarder:
    """Forwards subgraph requests over HTTP using aiohttp.

    The body is serialized with the same serializer used for signing, so the bytes
    on the wire are the bytes that were signed.
    """

    def __init__(
        self,
        *,
        session: "aiohttp.ClientSession | None" = None,
        serializer: JSONBodySerializer | None = None,
    ) -> None:
        """
        :param session: The session to send requests with. A session created here is
            closed by :py:meth:`close`; a supplied session is left to its owner.
        :param serializer: The serializer the signing interceptor uses.
        """
        self._owns_session = session is None
        self._session = session
        self._serializer = serializer or JSONBodySerializer()

    async def __call__(self, request: SubgraphRequest) -> SubgraphResponse:
        return await self.send(request)

    async def send(self, request: SubgraphRequest) -> SubgraphResponse:
        """Send the request and read the full response.

        :param request: The signed request.
        """
        if self._session is None:
            self._session = aiohttp.ClientSession()

        body = self._serializer.serialize(request.body)
        headers = list(
            chain.from_iterable(
                fld.as_tuples()
                for fld in request.fields.get_by_type(FieldPosition.HEADER)
            )
        )
        if "content-type" not in request.fields and (
            content_type := self._serializer.content_type(request.body)
        ):
            headers.append(("Content-Type", content_type))

        async with self._session.request(
            method=request.method,
            # The query is already percent-encoded and must be sent as signed.
            url=URL(request.destination.build(), encoded=True),
            headers=headers,
            data=body,
        ) as resp:
            return await self._marshal_response(resp, request)

    async def _marshal_response(
        self, aiohttp_resp: "aiohttp.ClientResponse", request: SubgraphRequest
    ) -> SubgraphResponse:
        """Convert a ``aiohttp.ClientResponse`` to a ``SubgraphResponse``"""
        return SubgraphResponse(
            status=aiohttp_resp.status,
            fields=Fields.from_tuples(aiohttp_resp.headers.items()),
            body=await aiohttp_resp.read(),
            reason=aiohttp_resp.reason,
            context=request.context,
        )

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "AIOHTTPForwarder":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
