"""Structural validation of formula node stores.

Finds shape problems without looking at types: operands with no operator
between them, operators missing an operand, functions with the wrong number
of arguments, and store integrity problems such as orphaned nodes.

Validation never raises. Problems are collected into a report so callers
can re-validate after every edit.
"""

from collections import Counter
from dataclasses import dataclass, field

from formulabase.core.logging import get_logger

from .catalog import AttributeCatalog
from .nodes import LEAF_KINDS, Node, NodeKind, NodeStore
from .signatures import get_signature, is_operator

logger = get_logger(__name__)


@dataclass(frozen=True)
class FormulaIssue:
    """A single validation finding.

    Attributes:
        message: Human-readable description.
        code: Machine-readable error code.
        node_id: Node the finding is about, when there is one.
    """

    message: str
    code: str
    node_id: str | None = None


@dataclass(frozen=True)
class BrokenConnection:
    """Two adjacent operands with no operator between them."""

    before: str
    after: str


@dataclass
class StructureReport:
    """Result of structural validation."""

    issues: list[FormulaIssue] = field(default_factory=list)
    broken_connections: list[BrokenConnection] = field(default_factory=list)

    @property
    def errors(self) -> list[str]:
        """Error messages in the order they were found."""
        return [issue.message for issue in self.issues]

    @property
    def is_valid(self) -> bool:
        """Check whether no structural problem was found."""
        return not self.issues


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def check_sequence(nodes: list[Node]) -> tuple[list[FormulaIssue], list[BrokenConnection]]:
    """Check how operands and operators alternate in one sibling sequence.

    Args:
        nodes: Sibling nodes in reading order.

    Returns:
        Issues found and the broken connections between adjacent operands.
    """
    issues: list[FormulaIssue] = []
    broken: list[BrokenConnection] = []

    has_operators = any(node.kind == NodeKind.OPERATOR for node in nodes)
    has_operands = any(node.is_operand for node in nodes)
    if has_operators and not has_operands:
        issues.append(
            FormulaIssue(
                "Operators need operands (attributes, values or functions)",
                "operators_without_operands",
            )
        )

    for current, following in zip(nodes, nodes[1:]):
        if current.is_operand and following.is_operand:
            broken.append(BrokenConnection(before=current.id, after=following.id))
            issues.append(
                FormulaIssue(
                    f"Broken connection: missing operator between operands "
                    f"({current.kind.value} followed by {following.kind.value})",
                    "missing_operator",
                    following.id,
                )
            )

    if has_operators and not has_operands:
        return issues, broken

    for index, node in enumerate(nodes):
        if node.kind != NodeKind.OPERATOR:
            continue
        left = nodes[index - 1] if index > 0 else None
        right = nodes[index + 1] if index + 1 < len(nodes) else None
        if left is None or not left.is_operand:
            issues.append(
                FormulaIssue(
                    f"Operator '{node.operator}' is missing its left operand",
                    "missing_operand",
                    node.id,
                )
            )
        if right is None or not right.is_operand:
            issues.append(
                FormulaIssue(
                    f"Operator '{node.operator}' is missing its right operand",
                    "missing_operand",
                    node.id,
                )
            )

    return issues, broken


class StructureValidator:
    """Validates the shape of a node store."""

    def __init__(self, store: NodeStore, catalog: AttributeCatalog | None = None):
        """Initialize validator.

        Args:
            store: Node store to validate.
            catalog: Optional catalog; when given, attribute references are
                checked against it.
        """
        self.store = store
        self.catalog = catalog
        self.issues: list[FormulaIssue] = []

    def validate(self) -> StructureReport:
        """Run every structural check and return the report."""
        self.issues = []

        self._check_integrity()
        sequence_issues, broken = check_sequence(self.store.roots())
        self.issues.extend(sequence_issues)
        for node in self.store:
            if node.kind == NodeKind.FUNCTION:
                self._check_function(node)

        logger.debug(
            "Validated formula structure",
            nodes=len(self.store),
            errors=len(self.issues),
            broken_connections=len(broken),
        )
        return StructureReport(issues=list(self.issues), broken_connections=broken)

    def _add(self, message: str, code: str, node_id: str | None = None) -> None:
        self.issues.append(FormulaIssue(message, code, node_id))

    def _check_integrity(self) -> None: # noqa: C901
        """Check ids, parent links and per-kind node content."""
        counts = Counter(node.id for node in self.store)
        for node_id, count in counts.items():
            if count > 1:
                self._add(f"Node id '{node_id}' is used by {count} nodes", "duplicate_id", node_id)

        for node in self.store:
            if node.parent_id is not None:
                parent = self.store.get(node.parent_id)
                if parent is None:
                    self._add(
                        f"Node '{node.id}' references missing parent '{node.parent_id}'",
                        "orphan_node",
                        node.id,
                    )
                elif self.store.in_cycle(node.id):
                    self._add(f"Node '{node.id}' is part of a parent cycle", "parent_cycle", node.id)
                elif parent.kind in LEAF_KINDS:
                    self._add(
                        f"{parent.kind.value.capitalize()} node '{parent.id}' cannot have children",
                        "leaf_has_children",
                        node.id,
                    )
                elif parent.kind == NodeKind.FUNCTION and not node.is_argument_group:
                    self._add(
                        f"Function '{parent.function}' can only contain argument groups",
                        "invalid_function_child",
                        node.id,
                    )

            if node.is_argument_group:
                parent = self.store.get(node.parent_id) if node.parent_id else None
                if parent is None or parent.kind != NodeKind.FUNCTION:
                    self._add(
                        f"Argument group '{node.id}' does not belong to a function",
                        "invalid_argument_group",
                        node.id,
                    )

            if node.kind == NodeKind.OPERATOR and not is_operator(node.operator or ""):
                self._add(f"Unknown operator '{node.operator}'", "unknown_operator", node.id)

            if node.kind == NodeKind.ATTRIBUTE:
                self._check_attribute(node)

    def _check_attribute(self, node: Node) -> None:
        if not node.attribute_id:
            self._add(f"Attribute node '{node.id}' does not reference an attribute", "unresolved_attribute", node.id)
        elif self.catalog is not None and self.catalog.lookup(node.attribute_id) is None:
            self._add(
                f"Attribute '{node.attribute_id}' not found in catalog",
                "unresolved_attribute",
                node.id,
            )

    def _check_function(self, node: Node) -> None:
        """Check a function's name, argument count and argument indexes."""
        signature = get_signature(node.function)
        if signature is None:
            self._add(f"Unknown function '{node.function}'", "unknown_function", node.id)
            return

        indexes = [group.argument_index for group in self.store.argument_groups(node.id)]
        for index, count in sorted(Counter(indexes).items()):
            if count > 1:
                self._add(
                    f"Function '{signature.name}' has more than one argument {index + 1}",
                    "duplicate_argument_index",
                    node.id,
                )
        distinct = sorted(set(indexes))

        if signature.is_variadic:
            if distinct != list(range(len(distinct))):
                self._add(
                    f"Function '{signature.name}' has gaps in its argument positions",
                    "invalid_argument_index",
                    node.id,
                )
            return

        if len(distinct) != signature.arity:
            self._add(
                f"Function '{signature.name}' requires exactly "
                f"{_plural(signature.arity, 'argument')}, got {len(distinct)}",
                "arity_mismatch",
                node.id,
            )
        out_of_range = [index for index in distinct if index < 0 or index >= signature.arity]
        for index in out_of_range:
            self._add(
                f"Function '{signature.name}' has no argument position {index + 1}",
                "invalid_argument_index",
                node.id,
            )


def validate_structure(store: NodeStore, catalog: AttributeCatalog | None = None) -> StructureReport:
    """Validate the structure of a node store.

    Args:
        store: Node store to validate.
        catalog: Optional catalog used to flag unresolved attribute references.

    Returns:
        StructureReport: Errors and broken connections (empty when valid).
    """
    validator = StructureValidator(store, catalog)
    return validator.validate()
