"""Type inference for formula node stores.

Infers a data type for every node bottom-up and reports operators and
functions used with incompatible types. Nothing is evaluated.

Multi-operator sequences are typed by folding strictly left to right, so
``{a} + {b} * {c}`` is typed as ``({a} + {b}) * {c}``.
"""

from dataclasses import dataclass, field

from formulabase.core.logging import get_logger

from .catalog import AttributeCatalog
from .nodes import Node, NodeKind, NodeStore
from .signatures import (
    ARITHMETIC_OPERATORS,
    BOOLEAN_OPERATORS,
    EQUALITY_OPERATORS,
    RELATIONAL_OPERATORS,
    DataType,
    FunctionSignature,
    ResultRule,
    data_type_from_catalog,
    get_signature,
)
from .structure_validator import FormulaIssue, check_sequence

logger = get_logger(__name__)


@dataclass
class TypeReport:
    """Result of type inference.

    Attributes:
        per_node: Inferred type of every node in the store.
        issues: Type, reference and nested structural findings.
        expression_type: Type of the root-level expression.
    """

    per_node: dict[str, DataType] = field(default_factory=dict)
    issues: list[FormulaIssue] = field(default_factory=list)
    expression_type: DataType = DataType.UNKNOWN

    @property
    def errors(self) -> list[str]:
        """Error messages in the order they were found."""
        return [issue.message for issue in self.issues]

    @property
    def is_valid(self) -> bool:
        """Check whether no problem was found."""
        return not self.issues


def _accepts(actual: DataType, *expected: DataType) -> bool:
    """Check a type against the expected ones; unknown is always accepted."""
    return actual == DataType.UNKNOWN or actual in expected


def _conflict(left: DataType, right: DataType) -> bool:
    """Check whether two known types differ."""
    return DataType.UNKNOWN not in (left, right) and left != right


class TypeChecker:
    """Infers node types for a node store."""

    def __init__(self, store: NodeStore, catalog: AttributeCatalog):
        self.store = store
        self.catalog = catalog
        self.per_node: dict[str, DataType] = {}
        self.issues: list[FormulaIssue] = []

    def infer(self) -> TypeReport:
        """Infer types for the whole store."""
        self.per_node = {}
        self.issues = []

        roots = self.store.roots()
        expression_type = self.sequence_type(roots) if roots else DataType.UNKNOWN

        # Nodes not reachable from a root (orphans, cycles) stay unknown
        for node in self.store:
            self.per_node.setdefault(node.id, DataType.UNKNOWN)

        logger.debug(
            "Inferred formula types",
            nodes=len(self.store),
            errors=len(self.issues),
            expression_type=expression_type.value,
        )
        return TypeReport(
            per_node=dict(self.per_node),
            issues=list(self.issues),
            expression_type=expression_type,
        )

    def _add(self, message: str, code: str, node_id: str | None = None) -> None:
        self.issues.append(FormulaIssue(message, code, node_id))

    def _record(self, node: Node, data_type: DataType) -> DataType:
        self.per_node[node.id] = data_type
        return data_type

    def sequence_type(self, nodes: list[Node]) -> DataType:
        """Type a sibling sequence by folding its operators left to right."""
        if not nodes:
            return DataType.UNKNOWN

        structural, _ = check_sequence(nodes)
        self.issues.extend(structural)

        operand_types = {node.id: self.node_type(node) for node in nodes if node.is_operand}

        def operand_type(index: int) -> DataType:
            if 0 <= index < len(nodes) and nodes[index].is_operand:
                return operand_types[nodes[index].id]
            return DataType.UNKNOWN

        current: DataType | None = None
        for index, node in enumerate(nodes):
            if node.kind != NodeKind.OPERATOR:
                continue
            left = current if current is not None else operand_type(index - 1)
            right = operand_type(index + 1)
            current = self._record(node, self.operator_type(node, left, right))

        if current is not None:
            return current
        if len(nodes) == 1:
            return operand_types.get(nodes[0].id, DataType.UNKNOWN)
        return DataType.UNKNOWN

    def node_type(self, node: Node) -> DataType:
        """Infer the type of a single operand node."""
        if node.kind == NodeKind.VALUE:
            return self._record(node, DataType.NUMBER)

        if node.kind == NodeKind.ATTRIBUTE:
            return self._record(node, self._attribute_type(node))

        if node.kind == NodeKind.FUNCTION:
            return self._record(node, self._function_type(node))

        if node.kind == NodeKind.GROUP:
            children = self.store.children_of(node.id)
            if not children:
                self._add("Empty group", "empty_group", node.id)
            return self._record(node, self.sequence_type(children))

        return self._record(node, DataType.UNKNOWN)

    def _attribute_type(self, node: Node) -> DataType:
        if not node.attribute_id:
            self._add(f"Attribute node '{node.id}' does not reference an attribute", "unresolved_attribute", node.id)
            return DataType.UNKNOWN
        attribute = self.catalog.lookup(node.attribute_id)
        if attribute is None:
            self._add(f"Attribute '{node.attribute_id}' not found in catalog", "unresolved_attribute", node.id)
            return DataType.UNKNOWN
        return data_type_from_catalog(attribute.declared_type)

    def _function_type(self, node: Node) -> DataType:
        # Argument groups are typed even for unknown functions so nested errors surface
        slots: dict[int, DataType] = {}
        for group in self.store.argument_groups(node.id):
            group_type = self._record(group, self.sequence_type(self.store.children_of(group.id)))
            slots.setdefault(group.argument_index, group_type)

        signature = get_signature(node.function)
        if signature is None:
            self._add(f"Unknown function '{node.function}'", "unknown_function", node.id)
            return DataType.UNKNOWN

        if signature.is_variadic:
            argument_types = [slots[index] for index in sorted(slots)]
        else:
            argument_types = [slots.get(index, DataType.UNKNOWN) for index in range(signature.arity)]
        return self.function_type(signature, argument_types, node.id)

    def operator_type(self, node: Node, left: DataType, right: DataType) -> DataType: # noqa: C901
        """Check operand types for an operator and return its result type."""
        operator = node.operator
        sides = (("left", left), ("right", right))

        if operator in ARITHMETIC_OPERATORS:
            for side, actual in sides:
                if not _accepts(actual, DataType.NUMBER):
                    self._add(
                        f"Arithmetic operator '{operator}' requires numeric operands, "
                        f"but the {side} operand has type {actual.value}",
                        "type_mismatch",
                        node.id,
                    )
            return DataType.NUMBER

        if operator in EQUALITY_OPERATORS:
            if _conflict(left, right):
                self._add(
                    f"Comparison operator '{operator}' requires operands of the same type, "
                    f"but got {left.value} and {right.value}",
                    "type_mismatch",
                    node.id,
                )
            return DataType.BOOLEAN

        if operator in RELATIONAL_OPERATORS:
            for side, actual in sides:
                if not _accepts(actual, DataType.NUMBER, DataType.STRING):
                    self._add(
                        f"Relational operator '{operator}' requires numeric or string operands, "
                        f"but the {side} operand has type {actual.value}",
                        "type_mismatch",
                        node.id,
                    )
            if _conflict(left, right):
                self._add(
                    f"Relational operator '{operator}' requires operands of the same type, "
                    f"but got {left.value} and {right.value}",
                    "type_mismatch",
                    node.id,
                )
            return DataType.BOOLEAN

        if operator in BOOLEAN_OPERATORS:
            for side, actual in sides:
                if not _accepts(actual, DataType.BOOLEAN):
                    self._add(
                        f"Logical operator '{operator}' requires boolean operands, "
                        f"but the {side} operand has type {actual.value}",
                        "type_mismatch",
                        node.id,
                    )
            return DataType.BOOLEAN

        self._add(f"Unknown operator '{operator}'", "unknown_operator", node.id)
        return DataType.UNKNOWN

    def function_type(
        self, signature: FunctionSignature, argument_types: list[DataType], node_id: str | None = None
    ) -> DataType:
        """Check argument types for a function and return its result type."""
        name = signature.name

        if signature.rule == ResultRule.NUMERIC:
            for position, actual in enumerate(argument_types, start=1):
                if not _accepts(actual, DataType.NUMBER):
                    self._add(
                        f"Function '{name}' requires numeric arguments, "
                        f"but argument {position} has type {actual.value}",
                        "type_mismatch",
                        node_id,
                    )
            return DataType.NUMBER

        if signature.rule == ResultRule.ALL_BOOLEAN:
            for position, actual in enumerate(argument_types, start=1):
                if not _accepts(actual, DataType.BOOLEAN):
                    self._add(
                        f"Function '{name}' requires boolean arguments, "
                        f"but argument {position} has type {actual.value}",
                        "type_mismatch",
                        node_id,
                    )
            return DataType.BOOLEAN

        if signature.rule == ResultRule.NEGATION:
            if argument_types and not _accepts(argument_types[0], DataType.BOOLEAN):
                self._add(
                    f"Function '{name}' requires a boolean argument, but got {argument_types[0].value}",
                    "type_mismatch",
                    node_id,
                )
            return DataType.BOOLEAN

        if signature.rule == ResultRule.NULL_CHECK:
            return DataType.BOOLEAN

        # Conditional: boolean condition, both branches of one type
        condition, when_true, when_false = (argument_types + [DataType.UNKNOWN] * 3)[:3]
        if not _accepts(condition, DataType.BOOLEAN):
            self._add(
                f"Function '{name}' requires a boolean condition as argument 1, but got {condition.value}",
                "type_mismatch",
                node_id,
            )
        if _conflict(when_true, when_false):
            self._add(
                f"Function '{name}' requires the true and false values to have the same type, "
                f"but got {when_true.value} and {when_false.value}",
                "type_mismatch",
                node_id,
            )
        return when_true if when_true != DataType.UNKNOWN else when_false


def infer_types(store: NodeStore, catalog: AttributeCatalog) -> TypeReport:
    """Infer node types and report type errors.

    Args:
        store: Node store to check.
        catalog: Catalog providing declared attribute types.

    Returns:
        TypeReport: Per-node types, errors and the expression type.
    """
    checker = TypeChecker(store, catalog)
    return checker.infer()
