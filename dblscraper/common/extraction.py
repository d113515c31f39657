"""Declarative extraction rules and their interpreter.

A record type is described by a Schema: a pydantic model plus an ordered
list of (field name, rule) pairs. Rules are small frozen dataclasses that
say where a value lives in the document; extract() walks a parsed page
with one generic interpreter and validates the result into the model.

Extraction is total. A rule whose elements are missing produces an empty
value ("" for text, 0 for integers, () for sequences, False for presence
checks, None for optional sub-records) instead of raising, so a page with
partially missing structure still yields a record.

Example::

    ABILITY = Schema.of(
        Ability,
        name=Text("span.ability.medium"),
        effect=Text("div.ability_text.small"),
    )
    SCHEMA = Schema.of(
        Character,
        name=Text("div.head h1"),
        tags=Each("span.tag", Text()),
        ultra_ability=OptionalRecord(ABILITY, selector="div.ultra"),
        is_lf=Exists("img.legends-limited"),
    )
    record = extract(parse_html(markup), SCHEMA)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Any, Generic, TypeVar, Union

from pydantic import BaseModel
from typing_extensions import assert_never

from dblscraper.common.page_element import PageElement

ModelT = TypeVar("ModelT", bound=BaseModel)


def normalize_text(value: str) -> str:
    """Trim whitespace, newlines, tabs and carriage returns at both ends.

    Interior whitespace is left untouched.
    """
    return value.strip().strip("\n\t\r")


def as_str(value: str | None) -> str:
    return value or ""


def as_int(value: str | None) -> int:
    """Parse an attribute as an integer; missing or non-numeric gives 0."""
    if not value:
        return 0
    try:
        return int(value)
    except ValueError:
        return 0


# =============================================================================
# Rules
# =============================================================================


@dataclass(frozen=True)
class Text:
    """Normalized text of one element.

    Attributes:
        selector: CSS selector under the current scope. None means the
            scope element itself.
        index: Which match to read (0 = first, -1 = last).
    """

    selector: str | None = None
    index: int = 0


@dataclass(frozen=True)
class Attr:
    """An attribute of one element, converted by ``parse``.

    Attributes:
        selector: CSS selector under the current scope, or None for the
            scope element itself.
        name: Attribute name.
        parse: Converter applied to the raw value (None when missing).
        index: Which match to read (0 = first, -1 = last).
    """

    selector: str | None
    name: str
    parse: Callable[[str | None], Any] = as_str
    index: int = 0


@dataclass(frozen=True)
class Each:
    """All matches of a selector, each mapped through ``item``.

    ``item`` is evaluated with the match as its scope; it may be a rule
    or a Schema (producing one sub-record per match).
    """

    selector: str
    item: Rule | Schema[Any]


@dataclass(frozen=True)
class Sibling:
    """Evaluate ``rule`` on the element right after an anchor.

    Several page sections are laid out as an anchor tag followed by its
    content block rather than as a container. This selects the anchor,
    steps to its next element sibling and evaluates ``rule`` there.

    Attributes:
        anchor: CSS selector for the anchor element.
        rule: Rule evaluated with the sibling as scope.
        sibling: Optional selector the sibling must match; when it does
            not, ``rule`` sees no scope and yields its empty value.
        anchor_index: Which anchor match to use (0 = first, -1 = last).
    """

    anchor: str
    rule: Rule
    sibling: str | None = None
    anchor_index: int = 0


@dataclass(frozen=True)
class Nested:
    """A required sub-record.

    When ``selector`` is given the sub-record is read from its first match;
    a missing scope yields a record of empty values.
    """

    schema: Schema[Any]
    selector: str | None = None


@dataclass(frozen=True)
class OptionalRecord:
    """A sub-record that is only present when all its text is present.

    The sub-record is extracted first; it is kept only if every string
    field came out non-empty, otherwise the field is None. Presence is
    decided on the extracted values, not on element existence.
    """

    schema: Schema[Any]
    selector: str | None = None


@dataclass(frozen=True)
class Slots:
    """A fixed number of positional sub-records.

    Every selector in ``schema`` is formatted with the 1-based slot number
    as ``{i}``. Slot i always lands at position i-1, found or not.
    """

    count: int
    schema: Schema[Any]


@dataclass(frozen=True)
class Exists:
    """True if ``selector`` matches at least one element under scope."""

    selector: str


@dataclass(frozen=True)
class Part:
    """One part of a text value split on a separator.

    Attributes:
        rule: Rule producing the text to split.
        separator: Delimiter between the parts.
        index: Which part to return (trimmed).
        min_parts: The value is "" unless the split gives at least this
            many parts.
    """

    rule: Rule
    separator: str
    index: int
    min_parts: int = 2


Rule = Union[
    Text, Attr, Each, Sibling, Nested, OptionalRecord, Slots, Exists, Part
]


@dataclass(frozen=True)
class Schema(Generic[ModelT]):
    """A record model plus the ordered rules that populate its fields.

    Attributes:
        model: The pydantic model the extracted fields validate into.
        fields: Ordered (field name, rule) pairs. Names are the model's
            attribute names.
    """

    model: type[ModelT]
    fields: tuple[tuple[str, Rule], ...]

    @classmethod
    def of(cls, model: type[ModelT], **rules: Rule) -> Schema[ModelT]:
        """Build a schema from keyword rules, keeping their order."""
        return cls(model=model, fields=tuple(rules.items()))

    def bind(self, **params: Any) -> Schema[ModelT]:
        """Return a copy with ``params`` formatted into every selector."""
        return replace(
            self,
            fields=tuple(
                (name, bind_rule(rule, **params)) for name, rule in self.fields
            ),
        )


# =============================================================================
# Interpreter
# =============================================================================


def extract(page: PageElement | None, schema: Schema[ModelT]) -> ModelT:
    """Extract one record from a parsed document.

    Args:
        page: The document root (or any scope element). None extracts a
            record of empty values.
        schema: The schema describing the record.

    Returns:
        A validated instance of ``schema.model``.
    """
    return schema.model.model_validate(extract_fields(page, schema))


def extract_fields(
    scope: PageElement | None, schema: Schema[Any]
) -> dict[str, Any]:
    """Evaluate every rule of ``schema`` in order, without validation."""
    return {name: evaluate(scope, rule) for name, rule in schema.fields}


def evaluate(scope: PageElement | None, rule: Rule) -> Any:
    """Evaluate a single rule against a scope element.

    Args:
        scope: The element selectors are resolved under, or None when the
            enclosing structure was missing.
        rule: The rule to evaluate.

    Returns:
        The field value, or the rule's empty value.
    """
    match rule:
        case Text(selector=selector, index=index):
            element = _select(scope, selector, index)
            if element is None:
                return ""
            return normalize_text(element.text_content())

        case Attr(selector=selector, name=name, parse=parse, index=index):
            element = _select(scope, selector, index)
            return parse(
                element.get_attribute(name) if element is not None else None
            )

        case Each(selector=selector, item=item):
            if scope is None:
                return ()
            return tuple(
                _evaluate_item(element, item)
                for element in scope.query_css(selector)
            )

        case Sibling(
            anchor=anchor,
            rule=inner,
            sibling=sibling,
            anchor_index=anchor_index,
        ):
            anchor_element = _select(scope, anchor, anchor_index)
            target = (
                anchor_element.next_sibling()
                if anchor_element is not None
                else None
            )
            if (
                target is not None
                and sibling is not None
                and not target.matches(sibling)
            ):
                target = None
            return evaluate(target, inner)

        case Nested(schema=schema, selector=selector):
            return schema.model.model_validate(
                extract_fields(_select(scope, selector, 0), schema)
            )

        case OptionalRecord(schema=schema, selector=selector):
            values = extract_fields(_select(scope, selector, 0), schema)
            if any(
                isinstance(value, str) and value == ""
                for value in values.values()
            ):
                return None
            return schema.model.model_validate(values)

        case Slots(count=count, schema=schema):
            return tuple(
                schema.model.model_validate(
                    extract_fields(scope, schema.bind(i=slot))
                )
                for slot in range(1, count + 1)
            )

        case Exists(selector=selector):
            return scope is not None and bool(scope.query_css(selector))

        case Part(
            rule=inner, separator=separator, index=index, min_parts=min_parts
        ):
            parts = str(evaluate(scope, inner)).split(separator)
            if len(parts) < min_parts:
                return ""
            return normalize_text(parts[index])

        case _:
            assert_never(rule)


def bind_rule(rule: Rule, **params: Any) -> Rule:
    """Format ``params`` into every selector of a rule, recursively."""

    def fmt(selector: str | None) -> str | None:
        return selector.format(**params) if selector is not None else None

    match rule:
        case Text() | Attr():
            return replace(rule, selector=fmt(rule.selector))
        case Each(selector=selector, item=item):
            bound_item = (
                item.bind(**params)
                if isinstance(item, Schema)
                else bind_rule(item, **params)
            )
            return Each(selector.format(**params), bound_item)
        case Sibling():
            return replace(
                rule,
                anchor=rule.anchor.format(**params),
                sibling=fmt(rule.sibling),
                rule=bind_rule(rule.rule, **params),
            )
        case Nested() | OptionalRecord():
            return replace(
                rule,
                schema=rule.schema.bind(**params),
                selector=fmt(rule.selector),
            )
        case Slots():
            # Inner slots are bound per slot when they are evaluated
            return rule
        case Exists(selector=selector):
            return Exists(selector.format(**params))
        case Part():
            return replace(rule, rule=bind_rule(rule.rule, **params))
        case _:
            assert_never(rule)


def _select(
    scope: PageElement | None, selector: str | None, index: int
) -> PageElement | None:
    """Pick the ``index``-th match of ``selector`` under ``scope``."""
    if scope is None or selector is None:
        return scope
    matches = scope.query_css(selector)
    try:
        return matches[index]
    except IndexError:
        return None


def _evaluate_item(element: PageElement, item: Rule | Schema[Any]) -> Any:
    if isinstance(item, Schema):
        return item.model.model_validate(extract_fields(element, item))
    return evaluate(element, item)
