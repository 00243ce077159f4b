"""Decoder for the identity service attribute dump.

The ``attributes`` service answers with one record per attribute::

    userdetails.token.id=AQIC...
    userdetails.attribute.name=cn
    userdetails.attribute.value=Alice
    userdetails.attribute.name=memberOf
    userdetails.attribute.value=staff
    userdetails.attribute.value=admins

A ``name`` line starts an attribute; the ``value`` lines that follow
belong to it until the next ``name`` line or end of input.  Every other
line is ignored.  Only the first ``=`` separates key from value, so
values may themselves contain ``=``.
"""
from __future__ import annotations

import re
from collections.abc import Iterator, Mapping

from opensso.core.constants import ATTRIBUTE_NAME_KEY, ATTRIBUTE_VALUE_KEY
from opensso.core.errors import EmptyAttributeName

AttributeValue = str | list[str]

_LINE_BREAK = re.compile(r"\r\n|\n|\r")


class AttributeMap(Mapping[str, AttributeValue]):
    """Case-insensitive, read-only view of decoded attributes.

    Keys are stored lower-cased.  A single-valued attribute is stored
    as a plain string, any other as a list.
    """

    def __init__(self, data: Mapping[str, AttributeValue] | None = None) -> None:
        self._data: dict[str, AttributeValue] = {
            name.lower(): value for name, value in (data or {}).items()
        }

    def __getitem__(self, name: str) -> AttributeValue:
        return self._data[name.lower()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._data

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"AttributeMap({self._data!r})"

    def value(self, name: str, force_array: bool = False) -> AttributeValue:
        """Return the value(s) of *name*.

        Unknown attributes yield ``""``, or ``[]`` when *force_array*
        is set.  With *force_array*, a scalar is wrapped in a
        one-element list.

        Raises
        ------
        EmptyAttributeName
            If *name* is empty.
        """
        if not name:
            raise EmptyAttributeName()
        stored = self._data.get(name.lower())
        if stored is None:
            return [] if force_array else ""
        if force_array and isinstance(stored, str):
            return [stored]
        return list(stored) if isinstance(stored, list) else stored

    def to_dict(self, force_arrays: bool = False) -> dict[str, AttributeValue]:
        """Return a fresh ``dict`` copy, optionally wrapping every scalar."""
        if not force_arrays:
            return {
                name: list(value) if isinstance(value, list) else value
                for name, value in self._data.items()
            }
        return {
            name: [value] if isinstance(value, str) else list(value)
            for name, value in self._data.items()
        }


def _collapse(values: list[str]) -> AttributeValue:
    return values[0] if len(values) == 1 else values


def decode_attributes(body: str) -> AttributeMap:
    """Decode an attribute dump into an :class:`AttributeMap`.

    Parameters
    ----------
    body:
        Text returned by the ``attributes`` service.

    Returns
    -------
    AttributeMap
        Empty when *body* is empty or holds no attribute records.
    """
    decoded: dict[str, AttributeValue] = {}
    current: str | None = None
    values: list[str] = []

    for line in _LINE_BREAK.split(body):
        key, sep, text = line.partition("=")
        if not sep:
            continue
        if key == ATTRIBUTE_NAME_KEY:
            if current:
                decoded[current.lower()] = _collapse(values)
            current = text
            values = []
        elif key == ATTRIBUTE_VALUE_KEY and current:
            values.append(text)

    if current:
        decoded[current.lower()] = _collapse(values)
    return AttributeMap(decoded)
