# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

from collections import OrderedDict
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from urllib.parse import urlsplit, urlunsplit


class FieldPosition(Enum):
    """Placement of a field within a message."""

    HEADER = 0
    TRAILER = 1


class Field:
    """A name-value pair representing a single HTTP header or trailer.

    Field names are case insensitive. The name is preserved as given so that it can
    be transmitted exactly, but lookups in :py:class:`Fields` ignore case.
    """

    def __init__(
        self,
        *,
        name: str,
        values: Iterable[str] | None = None,
        kind: FieldPosition = FieldPosition.HEADER,
    ):
        self.name = name
        self.values: list[str] = list(values) if values is not None else []
        self.kind = kind

    def add(self, value: str) -> None:
        """Append a value to a field."""
        self.values.append(value)

    def set(self, values: list[str]) -> None:
        """Overwrite existing field values."""
        self.values = values

    def as_string(self, delimiter: str = ", ") -> str:
        """Get delimited string of all values.

        If the ``Field`` has exactly one value, the value is returned unmodified.
        Values of multi-valued fields that contain commas or double quotes are quoted,
        with embedded quotes and backslashes escaped.
        """
        if len(self.values) == 1:
            return self.values[0]
        return delimiter.join(quote_and_escape_field_value(val) for val in self.values)

    def as_tuples(self) -> list[tuple[str, str]]:
        """Get list of ``name``, ``value`` tuples, one per value."""
        return [(self.name, val) for val in self.values]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Field):
            return False
        return (
            self.name == other.name
            and self.kind is other.kind
            and self.values == other.values
        )

    def __repr__(self) -> str:
        return f"Field(name={self.name!r}, value={self.values!r}, kind={self.kind!r})"


class Fields:
    def __init__(self, initial: Iterable[Field] | None = None):
        """Ordered, case-insensitive collection of header and trailer entries.

        :param initial: Initial ``Field`` objects. Names must be unique once
            normalized.
        """
        self.entries: OrderedDict[str, Field] = OrderedDict()
        for fld in initial or ():
            key = self._normalize_field_name(fld.name)
            if key in self.entries:
                raise ValueError(
                    "Field names of the initial list of fields must be unique. "
                    f"{fld.name!r} appears more than once."
                )
            self.entries[key] = fld

    @classmethod
    def from_tuples(
        cls, tuples: Iterable[tuple[str, str]], *, kind: FieldPosition | None = None
    ) -> Fields:
        """Build ``Fields`` from ``name``, ``value`` tuples.

        Repeated names are merged into a single multi-valued ``Field``.
        """
        fields = cls()
        for name, value in tuples:
            if name in fields:
                fields[name].add(value)
            else:
                fields[name] = Field(
                    name=name, values=[value], kind=kind or FieldPosition.HEADER
                )
        return fields

    def set_field(self, field: Field) -> None:
        """Set or replace the entry named by ``field.name``."""
        self[field.name] = field

    def __setitem__(self, name: str, field: Field) -> None:
        normalized_name = self._normalize_field_name(name)
        if normalized_name != self._normalize_field_name(field.name):
            raise ValueError(
                f"Supplied key {name} does not match Field.name provided: "
                f"{field.name}"
            )
        # Replace rather than update so the new name casing is kept.
        self.entries.pop(normalized_name, None)
        self.entries[normalized_name] = field

    def __getitem__(self, name: str) -> Field:
        return self.entries[self._normalize_field_name(name)]

    def __delitem__(self, name: str) -> None:
        del self.entries[self._normalize_field_name(name)]

    def get(self, key: str, default: Field | None = None) -> Field | None:
        return self[key] if key in self else default

    def get_by_type(self, kind: FieldPosition) -> list[Field]:
        """Get all fields of one kind, for example all headers."""
        return [entry for entry in self.entries.values() if entry.kind is kind]

    def copy(self) -> Fields:
        """Copy the collection and every field in it."""
        return Fields(
            Field(name=fld.name, values=list(fld.values), kind=fld.kind)
            for fld in self
        )

    def _normalize_field_name(self, name: str) -> str:
        return name.lower()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Fields):
            return False
        return self.entries == other.entries

    def __iter__(self) -> Iterator[Field]:
        yield from self.entries.values()

    def __len__(self) -> int:
        return len(self.entries)

    def __repr__(self) -> str:
        return f"Fields({list(self.entries.values())})"

    def __contains__(self, key: str) -> bool:
        return self._normalize_field_name(key) in self.entries


@dataclass(kw_only=True, frozen=True)
class URI:
    """Universal Resource Identifier, the target location of a request."""

    scheme: str = "https"
    host: str
    port: int | None = None
    path: str | None = None
    query: str | None = None
    fragment: str | None = None

    @classmethod
    def from_string(cls, url: str) -> URI:
        parts = urlsplit(url)
        if not parts.hostname:
            raise ValueError(f"URL has no host: {url!r}")
        return cls(
            scheme=parts.scheme or "https",
            host=parts.hostname,
            port=parts.port,
            path=parts.path or None,
            query=parts.query or None,
            fragment=parts.fragment or None,
        )

    @property
    def netloc(self) -> str:
        """Construct netloc string in format ``{host}:{port}``.

        ``port`` is only included if set.
        """
        return self._netloc

    # cached_property allows assignment, so it is kept behind a read-only property.
    @cached_property
    def _netloc(self) -> str:
        if self.port is not None:
            return f"{self.host}:{self.port}"
        return self.host

    def build(self) -> str:
        """Construct the URI string representation."""
        return urlunsplit(
            (self.scheme, self.netloc, self.path or "", self.query, self.fragment)
        )


@dataclass(kw_only=True, frozen=True)
class SignableRequest:
    """The parts of a request covered by a signature.

    ``body`` must be the exact bytes the receiving service will read.
    """

    method: str
    destination: URI
    fields: Fields = field(default_factory=Fields)
    body: bytes = field(default=b"", repr=False)


def quote_and_escape_field_value(value: str) -> str:
    """Escapes and quotes a single :class:`Field` value if necessary.

    See :func:`Field.as_string` for quoting and escaping logic.
    """
    chars_to_quote = (",", '"')
    if any(char in chars_to_quote for char in value):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    else:
        return value
