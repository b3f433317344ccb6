# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import logging

from .context import TypedProperties
from .exceptions import UnauthorizedError
from .types import SubgraphResponse

logger = logging.getLogger(__name__)

ERROR_TYPE_HEADER = "x-error-type"
"""The response header a subgraph uses to declare why it rejected a request."""


class ResponseClassifier:
    """Turns signing failures reported by a subgraph into a uniform 401.

    Only the status code and the error type header are inspected. Responses are
    never modified in place.
    """

    def __init__(self, *, error_type_header: str = ERROR_TYPE_HEADER) -> None:
        self._error_type_header = error_type_header

    def classify(
        self, response: SubgraphResponse, *, context: TypedProperties | None = None
    ) -> SubgraphResponse:
        """Return ``response`` unchanged, or a 401 carrying the declared error type.

        :param response: The response received from the subgraph.
        :param context: The context of the request the response answers. The 401
            carries it; when not given, the response's own context is used.
        """
        if response.is_success:
            return response

        error_type = response.fields.get(self._error_type_header)
        if error_type is None or not error_type.as_string():
            logger.warning(
                "Subgraph responded with status %s and no %s header; passing the "
                "response through unchanged.",
                response.status,
                self._error_type_header,
            )
            return response

        message = error_type.as_string()
        logger.debug(
            "Subgraph rejected request with status %s: %s", response.status, message
        )
        if context is None:
            context = response.context
        return UnauthorizedError(message, context=context).as_response()
