"""Flat node store for formula expressions.

A formula is kept as one ordered collection of nodes linked by ``parent_id``
instead of a nested tree. Sibling order is the position of a node in the
collection among nodes sharing the same parent, which is the left-to-right
reading order of the expression.
"""

import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, Iterator

from .signatures import get_signature


class NodeKind(str, Enum):
    """Kinds of nodes in a formula expression."""

    ATTRIBUTE = "attribute"
    OPERATOR = "operator"
    FUNCTION = "function"
    VALUE = "value"
    GROUP = "group"


# Kinds that stand in for a value inside an expression sequence
OPERAND_KINDS = frozenset({NodeKind.ATTRIBUTE, NodeKind.VALUE, NodeKind.FUNCTION, NodeKind.GROUP})

# Kinds that never own children
LEAF_KINDS = frozenset({NodeKind.ATTRIBUTE, NodeKind.VALUE, NodeKind.OPERATOR})


def new_node_id() -> str:
    """Generate a fresh opaque node identifier."""
    return f"node_{uuid.uuid4().hex}"


@dataclass(frozen=True)
class Node:
    """A single element of a formula expression.

    Attributes:
        id: Unique identifier, stable for the node's lifetime.
        kind: Node kind.
        parent_id: Id of the parent node, or None for a root node.
        attribute_id: Catalog id referenced by an attribute node.
        operator: Operator symbol of an operator node.
        function: Function name of a function node.
        value: Numeric literal of a value node.
        argument_index: Argument slot of a group owned by a function.
    """

    id: str
    kind: NodeKind
    parent_id: str | None = None
    attribute_id: str | None = None
    operator: str | None = None
    function: str | None = None
    value: int | float | None = None
    argument_index: int | None = None

    @property
    def is_operand(self) -> bool:
        """Check whether the node stands in for a value in a sequence."""
        return self.kind in OPERAND_KINDS

    @property
    def is_argument_group(self) -> bool:
        """Check whether the node is a positional function argument."""
        return self.kind == NodeKind.GROUP and self.argument_index is not None

    @classmethod
    def new_attribute(cls, attribute_id: str | None, parent_id: str | None = None) -> "Node":
        return cls(new_node_id(), NodeKind.ATTRIBUTE, parent_id, attribute_id=attribute_id)

    @classmethod
    def new_operator(cls, operator: str | None, parent_id: str | None = None) -> "Node":
        return cls(new_node_id(), NodeKind.OPERATOR, parent_id, operator=operator)

    @classmethod
    def new_function(cls, function: str | None, parent_id: str | None = None) -> "Node":
        return cls(new_node_id(), NodeKind.FUNCTION, parent_id, function=function)

    @classmethod
    def new_value(cls, value: int | float | None, parent_id: str | None = None) -> "Node":
        return cls(new_node_id(), NodeKind.VALUE, parent_id, value=value)

    @classmethod
    def new_group(cls, parent_id: str | None = None, argument_index: int | None = None) -> "Node":
        return cls(new_node_id(), NodeKind.GROUP, parent_id, argument_index=argument_index)


class NodeStore:
    """Ordered, parent-indexed collection of formula nodes.

    Queries are linear scans over the collection. Mutations keep sibling
    order intact and never repair the tree: deleting a parent leaves its
    children pointing at a missing id, which validation reports.
    """

    def __init__(self, nodes: Iterable[Node] | None = None):
        self._nodes: list[Node] = list(nodes or [])

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return any(node.id == node_id for node in self._nodes)

    def __repr__(self) -> str:
        return f"NodeStore({len(self._nodes)} nodes)"

    @property
    def nodes(self) -> tuple[Node, ...]:
        """All nodes in collection order."""
        return tuple(self._nodes)

    def copy(self) -> "NodeStore":
        """Return an independent store holding the same nodes."""
        return NodeStore(self._nodes)

    # Queries

    def get(self, node_id: str) -> Node | None:
        """Get a node by id, or None if absent."""
        for node in self._nodes:
            if node.id == node_id:
                return node
        return None

    def exists(self, node_id: str) -> bool:
        """Check whether a node with the given id exists."""
        return node_id in self

    def roots(self) -> list[Node]:
        """Get nodes without a parent, in collection order."""
        return [node for node in self._nodes if node.parent_id is None]

    def children_of(self, node_id: str) -> list[Node]:
        """Get the direct children of a node, in collection order."""
        return [node for node in self._nodes if node.parent_id == node_id]

    def argument_groups(self, function_id: str) -> list[Node]:
        """Get the argument groups of a function, sorted by argument index."""
        groups = [node for node in self.children_of(function_id) if node.is_argument_group]
        return sorted(groups, key=lambda node: node.argument_index)

    def ancestors(self, node_id: str) -> Iterator[Node]:
        """Yield the parent chain of a node, nearest first.

        Stops at a root, at a dangling parent id, or when the chain loops.
        """
        seen = {node_id}
        node = self.get(node_id)
        while node is not None and node.parent_id is not None:
            if node.parent_id in seen:
                return
            seen.add(node.parent_id)
            node = self.get(node.parent_id)
            if node is not None:
                yield node

    def is_ancestor(self, ancestor_id: str, node_id: str) -> bool:
        """Check whether ``ancestor_id`` appears in the parent chain of ``node_id``."""
        return any(node.id == ancestor_id for node in self.ancestors(node_id))

    def in_cycle(self, node_id: str) -> bool:
        """Check whether the parent chain of a node loops back onto itself."""
        node = self.get(node_id)
        if node is None or node.parent_id is None:
            return False
        return node.parent_id == node_id or self.is_ancestor(node_id, node.parent_id)

    def allowed_child_kinds(self, node_id: str | None = None) -> frozenset[NodeKind]:
        """Get the kinds a caller may add under a node, or at root level.

        Args:
            node_id: Id of the prospective parent, or None for the root level.

        Returns:
            frozenset[NodeKind]: Kinds that may be added.
        """
        everything = frozenset(NodeKind)
        if node_id is None:
            roots = self.roots()
            has_operators = any(node.kind == NodeKind.OPERATOR for node in roots)
            has_operands = any(node.is_operand for node in roots)
            if has_operators and not has_operands:
                return everything - {NodeKind.OPERATOR}
            return everything

        node = self.get(node_id)
        if node is None:
            raise KeyError(node_id)
        if node.kind in LEAF_KINDS:
            return frozenset()
        if node.kind == NodeKind.FUNCTION:
            if self.argument_groups(node.id):
                return frozenset()
            return frozenset({NodeKind.GROUP})
        return everything

    # Mutations

    def _index_of(self, node_id: str) -> int:
        for index, node in enumerate(self._nodes):
            if node.id == node_id:
                return index
        raise KeyError(node_id)

    def _check_new(self, node: Node) -> None:
        if node.id in self:
            raise ValueError(f"Node id '{node.id}' already exists")

    def add(self, node: Node, after_id: str | None = None) -> Node:
        """Add a node, appended or placed right after another node.

        Args:
            node: Node to add.
            after_id: Optional id of the node to insert after.

        Returns:
            Node: The added node.

        Raises:
            ValueError: If the node id is already in use.
            KeyError: If ``after_id`` does not exist.
        """
        self._check_new(node)
        if after_id is None:
            self._nodes.append(node)
        else:
            self._nodes.insert(self._index_of(after_id) + 1, node)
        return node

    def insert_relative(self, node: Node, target_id: str, position: str = "after") -> Node:
        """Insert a node next to a target, as a sibling of the target.

        The inserted node takes the target's parent regardless of the parent
        it was created with.
        """
        if position not in ("before", "after"):
            raise ValueError(f"Invalid position '{position}'. Expected 'before' or 'after'")
        self._check_new(node)
        index = self._index_of(target_id)
        target = self._nodes[index]
        node = replace(node, parent_id=target.parent_id)
        self._nodes.insert(index if position == "before" else index + 1, node)
        return node

    def update(self, node_id: str, **changes) -> Node:
        """Replace fields of a node in place, keeping its position.

        Raises:
            KeyError: If the node does not exist.
            ValueError: If the change would alter the node id.
        """
        if "id" in changes:
            raise ValueError("Node id cannot be changed")
        index = self._index_of(node_id)
        updated = replace(self._nodes[index], **changes)
        self._nodes[index] = updated
        return updated

    def delete(self, node_id: str) -> Node:
        """Remove exactly one node. Children are left in place."""
        return self._nodes.pop(self._index_of(node_id))

    def set_function(self, node_id: str, name: str) -> list[Node]:
        """Set the function of a node and rebuild its argument slots.

        For a fixed-arity function, existing argument groups of the node are
        removed together with their contents and ``arity`` empty groups are
        appended. Variadic functions keep whatever groups the node already owns.

        Returns:
            list[Node]: Newly created argument groups.
        """
        self.update(node_id, kind=NodeKind.FUNCTION, function=name)
        signature = get_signature(name)
        if signature is None or signature.is_variadic:
            return []

        old_groups = [group.id for group in self.argument_groups(node_id)]
        self._nodes = [
            node for node in self._nodes
            if node.id not in old_groups
            and not any(self.is_ancestor(group_id, node.id) for group_id in old_groups)
        ]
        groups = [Node.new_group(parent_id=node_id, argument_index=i) for i in range(signature.arity)]
        self._nodes.extend(groups)
        return groups

    def insert_operator_between(self, before_id: str, after_id: str, operator: str) -> Node:
        """Insert an operator between two adjacent sibling operands.

        This is the fix offered for a broken connection.

        Raises:
            ValueError: If the two nodes are not adjacent siblings.
        """
        before = self.get(before_id)
        after = self.get(after_id)
        if before is None:
            raise KeyError(before_id)
        if after is None:
            raise KeyError(after_id)
        siblings = [node.id for node in self._nodes if node.parent_id == before.parent_id]
        position = siblings.index(before_id)
        if after.parent_id != before.parent_id or position + 1 >= len(siblings) or siblings[position + 1] != after_id:
            raise ValueError(f"Nodes '{before_id}' and '{after_id}' are not adjacent siblings")
        return self.add(Node.new_operator(operator, parent_id=before.parent_id), after_id=before_id)
