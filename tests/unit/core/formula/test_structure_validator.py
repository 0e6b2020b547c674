"""Tests for structural validation."""

from formulabase.core.formula import parse, validate_structure
from formulabase.core.formula.nodes import Node, NodeKind, NodeStore
from formulabase.core.formula.structure_validator import BrokenConnection, check_sequence


def codes(report):
    return [issue.code for issue in report.issues]


class TestCheckSequence:
    """Test the per-sequence operand/operator check."""

    def test_empty_sequence(self):
        """Test that an empty sequence has no issues."""
        assert check_sequence([]) == ([], [])

    def test_alternating_sequence(self):
        """Test a well-formed sequence."""
        nodes = [Node.new_value(1), Node.new_operator("+"), Node.new_value(2)]
        issues, broken = check_sequence(nodes)
        assert issues == []
        assert broken == []

    def test_operators_only_gives_single_summary(self):
        """Test that a sequence of only operators is one error."""
        issues, broken = check_sequence([Node.new_operator("+"), Node.new_operator("-")])

        assert len(issues) == 1
        assert issues[0].code == "operators_without_operands"
        assert broken == []


class TestAdjacency:
    """Test detection of operands with no operator between them."""

    def test_two_attributes(self, catalog):
        """Test the broken connection between two attributes."""
        first = Node.new_attribute("Price")
        second = Node.new_attribute("Price")
        report = validate_structure(NodeStore([first, second]))

        assert report.broken_connections == [BrokenConnection(before=first.id, after=second.id)]
        assert len(report.errors) == 1
        assert "missing operator" in report.errors[0]
        assert "attribute followed by attribute" in report.errors[0]

    def test_parsed_adjacency(self, catalog):
        """Test adjacency in parsed text."""
        report = validate_structure(parse("{Price} {Price}", catalog))

        assert len(report.broken_connections) == 1
        assert codes(report) == ["missing_operator"]

    def test_function_next_to_value(self, catalog):
        """Test that functions and values are operand-like."""
        report = validate_structure(parse("sqrt(1) 2 (3)", catalog))

        assert len(report.broken_connections) == 2
        assert "function followed by value" in report.errors[0]
        assert "value followed by group" in report.errors[1]

    def test_nested_adjacency_not_flagged(self, catalog):
        """Test that adjacency inside a function argument is not a structural error."""
        report = validate_structure(parse("sqrt({Price} {Price})", catalog))
        assert report.is_valid


class TestOperatorOperands:
    """Test that operators have operands on both sides."""

    def test_missing_right(self, catalog):
        """Test an operator at the end of the formula."""
        report = validate_structure(parse("{Price} +", catalog))
        assert report.errors == ["Operator '+' is missing its right operand"]

    def test_missing_left(self, catalog):
        """Test an operator at the start of the formula."""
        report = validate_structure(parse("* 2", catalog))
        assert report.errors == ["Operator '*' is missing its left operand"]

    def test_leading_minus(self, catalog):
        """Test that a sign is an operator without a left operand."""
        report = validate_structure(parse("-5", catalog))
        assert codes(report) == ["missing_operand"]

    def test_two_operators_in_a_row(self, catalog):
        """Test consecutive operators."""
        report = validate_structure(parse("1 + * 2", catalog))

        assert report.errors == [
            "Operator '+' is missing its right operand",
            "Operator '*' is missing its left operand",
        ]

    def test_operators_without_operands(self, catalog):
        """Test the single summary error."""
        report = validate_structure(parse("+ -", catalog))

        assert len(report.errors) == 1
        assert codes(report) == ["operators_without_operands"]


class TestArity:
    """Test function argument counts."""

    def test_sqrt_without_arguments(self):
        """Test a function with too few argument groups."""
        report = validate_structure(NodeStore([Node.new_function("sqrt")]))

        assert report.errors == ["Function 'sqrt' requires exactly 1 argument, got 0"]
        assert codes(report) == ["arity_mismatch"]

    def test_sqrt_with_one_argument(self):
        """Test the correct number of argument groups."""
        function = Node.new_function("sqrt")
        group = Node.new_group(function.id, 0)
        store = NodeStore([function, group, Node.new_value(4, group.id)])

        assert "arity_mismatch" not in codes(validate_structure(store))

    def test_plural_message(self, catalog):
        """Test the message for multi-argument functions."""
        report = validate_structure(parse("pow(2)", catalog))
        assert report.errors == ["Function 'pow' requires exactly 2 arguments, got 1"]

    def test_too_many_arguments(self, catalog):
        """Test extra arguments."""
        report = validate_structure(parse("abs(1, 2)", catalog))

        assert "arity_mismatch" in codes(report)
        assert "invalid_argument_index" in codes(report)

    def test_nested_function_checked(self, catalog):
        """Test that arity is checked at every level."""
        report = validate_structure(parse("abs(pow(2))", catalog))
        assert report.errors == ["Function 'pow' requires exactly 2 arguments, got 1"]

    def test_variadic_any_count(self, catalog):
        """Test that variadic functions are never flagged for arity."""
        for text in ("AND()", "AND({VIP})", "OR({VIP}, {VIP}, {VIP})"):
            assert validate_structure(parse(text, catalog)).is_valid

    def test_variadic_gap(self):
        """Test that gaps in variadic argument positions are reported."""
        function = Node.new_function("AND")
        store = NodeStore([function, Node.new_group(function.id, 0), Node.new_group(function.id, 2)])

        report = validate_structure(store)
        assert codes(report) == ["invalid_argument_index"]

    def test_bare_function_name(self, catalog):
        """Test that a function written without parentheses fails arity."""
        report = validate_structure(parse("sqrt", catalog))
        assert codes(report) == ["arity_mismatch"]

    def test_duplicate_argument_index(self):
        """Test two groups claiming the same slot."""
        function = Node.new_function("abs")
        store = NodeStore([function, Node.new_group(function.id, 0), Node.new_group(function.id, 0)])

        assert codes(validate_structure(store)) == ["duplicate_argument_index"]

    def test_unknown_function(self):
        """Test a function name outside the known set."""
        report = validate_structure(NodeStore([Node.new_function("median")]))
        assert report.errors == ["Unknown function 'median'"]


class TestIntegrity:
    """Test store integrity checks."""

    def test_deleted_function_orphans_group(self, catalog):
        """Test that deleting a function leaves a reported orphan."""
        store = parse("sqrt({Price})", catalog)
        store.delete(store.roots()[0].id)

        report = validate_structure(store)

        assert codes(report) == ["orphan_node", "invalid_argument_group"]

    def test_duplicate_id(self):
        """Test two nodes with the same id."""
        node = Node.new_value(1)
        report = validate_structure(NodeStore([node, node]))
        assert "duplicate_id" in codes(report)

    def test_parent_cycle(self):
        """Test nodes that are each other's parent."""
        store = NodeStore(
            [
                Node("a", NodeKind.GROUP, parent_id="b"),
                Node("b", NodeKind.GROUP, parent_id="a"),
            ]
        )
        assert codes(validate_structure(store)) == ["parent_cycle", "parent_cycle"]

    def test_leaf_with_children(self):
        """Test a child under an attribute."""
        attribute = Node.new_attribute("Price")
        report = validate_structure(NodeStore([attribute, Node.new_value(1, attribute.id)]))

        assert codes(report) == ["leaf_has_children"]
        assert report.errors[0].startswith("Attribute node")

    def test_value_directly_under_function(self):
        """Test that functions only own argument groups."""
        function = Node.new_function("NOT")
        group = Node.new_group(function.id, 0)
        store = NodeStore([function, group, Node.new_value(1, function.id)])

        assert codes(validate_structure(store)) == ["invalid_function_child"]

    def test_indexed_group_at_root(self):
        """Test an argument group without a function."""
        report = validate_structure(NodeStore([Node.new_group(None, 0)]))
        assert codes(report) == ["invalid_argument_group"]

    def test_unknown_operator(self):
        """Test an operator outside the known set."""
        store = NodeStore([Node.new_value(1), Node.new_operator("^"), Node.new_value(2)])
        assert codes(validate_structure(store)) == ["unknown_operator"]

    def test_unresolved_attribute_with_catalog(self, catalog):
        """Test attribute references checked against a catalog."""
        store = NodeStore([Node.new_attribute("missing")])

        assert validate_structure(store).is_valid
        report = validate_structure(store, catalog)
        assert report.errors == ["Attribute 'missing' not found in catalog"]

    def test_attribute_without_reference(self):
        """Test an attribute node with no attribute id."""
        report = validate_structure(NodeStore([Node.new_attribute(None)]))
        assert codes(report) == ["unresolved_attribute"]


class TestValidationProperties:
    """Test general validation guarantees."""

    def test_valid_formula(self, catalog):
        """Test a formula with no structural problems."""
        report = validate_structure(parse("IF({VIP}, {Price} * 2, 0)", catalog), catalog)

        assert report.is_valid
        assert report.errors == []
        assert report.broken_connections == []

    def test_idempotent(self, catalog):
        """Test repeated validation of an unchanged store."""
        store = parse("{Price} {Price} + pow(1)", catalog)
        assert validate_structure(store) == validate_structure(store)

    def test_store_not_mutated(self, catalog):
        """Test that validation leaves the store untouched."""
        store = parse("{Price} +", catalog)
        before = store.nodes
        validate_structure(store)
        assert store.nodes == before
