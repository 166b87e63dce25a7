"""Naming variants derived from a single kebab-case identifier.

Every generated artifact refers to the entity through one of the variants
produced here, so all of them are pure functions of the raw identifier::

    >>> derive("order-item")
    NameVariants(pascal='OrderItem', camel='orderItem', flat_lower='orderitem',
                 plural_lower='orderitems', file_safe='order_item')

The plural rule is the literal ``flat_lower + "s"``.  It is wrong for nouns
such as ``category`` or ``address``; generated code already relies on that
exact convention, so it is kept as is.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class NameVariants:
    """Every casing of one identifier used across the generated tree."""

    pascal: str
    camel: str
    flat_lower: str
    plural_lower: str
    file_safe: str


def upper_char(char: str) -> str:
    """Upper-case one character, never expanding it (``ß`` stays ``ß``)."""
    upper = char.upper()
    return upper if len(upper) == 1 else char


def lower_char(char: str) -> str:
    """Lower-case one character to exactly one character.

    ``İ`` is the only character whose full lowercase mapping is longer than
    one; its simple mapping is the leading ``i``.
    """
    return char.lower()[:1]


def lower(value: str) -> str:
    """Per-character lower case; the result has the same length as *value*."""
    return "".join(lower_char(char) for char in value)


def kebab_to_pascal(value: str) -> str:
    """``order-item`` -> ``OrderItem``.  Empty segments contribute nothing."""
    return "".join(
        upper_char(segment[0]) + segment[1:] for segment in value.split("-") if segment
    )


def kebab_to_camel(value: str) -> str:
    """``order-item`` -> ``orderItem``."""
    pascal = kebab_to_pascal(value)
    if not pascal:
        return ""
    return lower_char(pascal[0]) + pascal[1:]


def flat_lower(value: str) -> str:
    return lower(value.replace("-", ""))


def file_safe(value: str) -> str:
    return value.replace("-", "_")


def derive(identifier: str) -> NameVariants:
    """Build the full :class:`NameVariants` for *identifier*.

    Never raises: an empty identifier yields empty strings everywhere.
    """
    flat = flat_lower(identifier)
    return NameVariants(
        pascal=kebab_to_pascal(identifier),
        camel=kebab_to_camel(identifier),
        flat_lower=flat,
        plural_lower=f"{flat}s" if flat else "",
        file_safe=file_safe(identifier),
    )
