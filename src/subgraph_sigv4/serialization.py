# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import json
from typing import Any

from .exceptions import BodySerializationError

JSON_CONTENT_TYPE = "application/json"


class JSONBodySerializer:
    """Serializes structured request bodies to the exact bytes put on the wire.

    The same serializer must be used when signing a request and when transmitting
    it, otherwise the payload hash in the signature will not match the body the
    subgraph receives. Output is deterministic: the same input object always gives
    the same bytes. Mapping keys keep their insertion order, so equal dicts built in
    a different order give different bytes.
    """

    def __init__(self, *, encoding: str = "utf-8") -> None:
        self._encoding = encoding
        self._encoder = json.JSONEncoder(
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
            check_circular=True,
        )

    def serialize(self, body: Any) -> bytes:
        """Serialize ``body`` to canonical bytes.

        :param body: The structured body. Bytes-like values are passed through and
            strings are encoded, everything else is encoded as compact JSON.
        :raises BodySerializationError: If the value has no faithful representation.
        """
        match body:
            case None:
                return b""
            case bytes():
                return body
            case bytearray() | memoryview():
                return bytes(body)
            case str():
                return self._encode(body)
            case _:
                try:
                    text = self._encoder.encode(body)
                except (TypeError, ValueError, RecursionError) as e:
                    raise BodySerializationError(
                        f"Request body of type {type(body).__name__} is not JSON "
                        f"serializable: {e}"
                    ) from e
                return self._encode(text)

    def content_type(self, body: Any) -> str | None:
        """The content type implied by the serialized form of ``body``."""
        if body is None or isinstance(body, bytes | bytearray | memoryview | str):
            return None
        return JSON_CONTENT_TYPE

    def _encode(self, text: str) -> bytes:
        try:
            return text.encode(self._encoding)
        except UnicodeEncodeError as e:
            raise BodySerializationError(
                f"Request body could not be encoded as {self._encoding}: {e}"
            ) from e
