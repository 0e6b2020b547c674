"""Serializer for formula node stores.

Produces canonical formula text from a node store. This is the structural
inverse of the parser: parsing the output yields a store that serializes
to the same text.
"""

from decimal import Decimal

from formulabase.core.config import get_settings

from .catalog import AttributeCatalog
from .nodes import Node, NodeKind, NodeStore


def format_number(value: int | float | None) -> str:
    """Format a numeric literal without exponent notation."""
    if value is None:
        return "0"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return format(Decimal(repr(value)), "f")
    return str(value)


class Serializer:
    """Renders node sequences to formula text."""

    def __init__(self, store: NodeStore, catalog: AttributeCatalog, placeholder: str | None = None):
        self.store = store
        self.catalog = catalog
        self.placeholder = (
            placeholder if placeholder is not None else get_settings().unresolved_attribute_placeholder
        )

    def serialize(self) -> str:
        """Serialize the root-level expression."""
        return self.sequence(self.store.roots())

    def sequence(self, nodes: list[Node]) -> str:
        """Serialize sibling nodes, joined by single spaces."""
        parts = (self.node(node) for node in nodes if not node.is_argument_group)
        return " ".join(part for part in parts if part)

    def node(self, node: Node) -> str:
        """Serialize one node."""
        if node.kind == NodeKind.ATTRIBUTE:
            attribute = self.catalog.lookup(node.attribute_id) if node.attribute_id else None
            return f"{{{attribute.name}}}" if attribute is not None else self.placeholder

        if node.kind == NodeKind.OPERATOR:
            return node.operator or ""

        if node.kind == NodeKind.VALUE:
            return format_number(node.value)

        if node.kind == NodeKind.FUNCTION:
            return f"{node.function or ''}({', '.join(self.arguments(node))})"

        if node.kind == NodeKind.GROUP:
            return f"({self.sequence(self.store.children_of(node.id))})"

        return ""

    def arguments(self, function: Node) -> list[str]:
        """Serialize each argument slot of a function, in index order.

        Slots below the highest index that have no group render empty.
        """
        groups: dict[int, Node] = {}
        for group in self.store.argument_groups(function.id):
            groups.setdefault(group.argument_index, group)
        if not groups:
            return []

        arguments = []
        for index in range(max(groups) + 1):
            group = groups.get(index)
            arguments.append(self.sequence(self.store.children_of(group.id)) if group else "")
        return arguments


def serialize(store: NodeStore, catalog: AttributeCatalog) -> str:
    """Serialize a node store to canonical formula text.

    Args:
        store: Node store to serialize.
        catalog: Catalog used to resolve attribute names.

    Returns:
        str: Canonical formula text.
    """
    return Serializer(store, catalog).serialize()
