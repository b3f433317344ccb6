# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import sys
from collections import UserDict
from dataclasses import dataclass
from typing import Any, overload


@dataclass(kw_only=True, frozen=True, slots=True, init=False)
class PropertyKey[T]:
    """A typed key for :py:class:`TypedProperties`."""

    key: str
    """The string key used to access the value."""

    value_type: type[T]
    """The type of the associated value in the property bag."""

    def __init__(self, *, key: str, value_type: type[T]) -> None:
        # Intern the key to speed up dict access
        object.__setattr__(self, "key", sys.intern(key))
        object.__setattr__(self, "value_type", value_type)

    def __str__(self) -> str:
        return self.key


class TypedProperties(UserDict[str, Any]):
    """The request-scoped context carried alongside a subgraph request.

    Keys can be either a string or a :py:class:`PropertyKey`. Using a PropertyKey
    lets type checkers narrow to the associated value type. No runtime type
    assertion is performed.

    ..code-block:: python

        properties = TypedProperties()
        properties[TRACE_ID] = "1-5759e988-bd862e3fe1be46a994272793"

        assert assert_type(properties[TRACE_ID], str) == "1-5759e988-..."
    """

    @overload
    def __getitem__[T](self, key: PropertyKey[T]) -> T: ...
    @overload
    def __getitem__(self, key: str) -> Any: ...
    def __getitem__(self, key: str | PropertyKey[Any]) -> Any:
        return self.data[key if isinstance(key, str) else key.key]

    @overload
    def __setitem__[T](self, key: PropertyKey[T], value: T) -> None: ...
    @overload
    def __setitem__(self, key: str, value: Any) -> None: ...
    def __setitem__(self, key: str | PropertyKey[Any], value: Any) -> None:
        self.data[key if isinstance(key, str) else key.key] = value

    def __delitem__(self, key: str | PropertyKey[Any]) -> None:
        del self.data[key if isinstance(key, str) else key.key]

    def __contains__(self, key: object) -> bool:
        return super().__contains__(key.key if isinstance(key, PropertyKey) else key)

    @overload
    def get[T](self, key: PropertyKey[T], default: None = None) -> T | None: ...
    @overload
    def get[T](self, key: PropertyKey[T], default: T) -> T: ...
    @overload
    def get(self, key: str, default: Any = None) -> Any: ...

    # pyright has trouble detecting compatible overrides when both the superclass
    # and subclass have overloads.
    def get(self, key: str | PropertyKey[Any], default: Any = None) -> Any:  # type: ignore
        return self.data.get(key if isinstance(key, str) else key.key, default)


TRACE_ID = PropertyKey(key="trace_id", value_type=str)
"""The identifier used to correlate a subgraph call with its inbound request."""

SUBGRAPH_NAME = PropertyKey(key="subgraph_name", value_type=str)
"""The name of the subgraph a request is routed to."""
