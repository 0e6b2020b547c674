"""Operator and function tables for formula expressions.

Holds the closed operator and function sets, the per-function signatures
(arity, slot labels, result-type rule) and the four-way data type lattice
attributes are mapped into.
"""

from dataclasses import dataclass
from enum import Enum


class DataType(str, Enum):
    """Semantic type of a node or expression."""

    NUMBER = "number"
    BOOLEAN = "boolean"
    STRING = "string"
    UNKNOWN = "unknown"


class ResultRule(str, Enum):
    """How a function derives its result type from its arguments."""

    NUMERIC = "numeric"  # every argument number, returns number
    ALL_BOOLEAN = "all_boolean"  # every argument boolean, returns boolean
    NEGATION = "negation"  # one boolean argument, returns boolean
    NULL_CHECK = "null_check"  # any argument, returns boolean
    CONDITIONAL = "conditional"  # boolean condition, branches share a type


VARIADIC = "variadic"

ARITHMETIC_OPERATORS = ("+", "-", "*", "/", "**", "%")
EQUALITY_OPERATORS = ("==", "!=")
RELATIONAL_OPERATORS = (">", "<", ">=", "<=")
BOOLEAN_OPERATORS = ("AND", "OR", "NOT")
LOGICAL_OPERATORS = BOOLEAN_OPERATORS + EQUALITY_OPERATORS + RELATIONAL_OPERATORS
ALL_OPERATORS = ARITHMETIC_OPERATORS + LOGICAL_OPERATORS


@dataclass(frozen=True)
class FunctionSignature:
    """Fixed signature of a formula function.

    Attributes:
        name: Function name as written in formula text.
        arity: Number of arguments, or ``VARIADIC``.
        labels: Human-readable label for each argument slot.
        rule: Result-type rule applied by the type checker.
        description: Short description of what the function does.
        example: Example call.
    """

    name: str
    arity: int | str
    labels: tuple[str, ...]
    rule: ResultRule
    description: str = ""
    example: str = ""

    @property
    def is_variadic(self) -> bool:
        """Check whether the function accepts any number of arguments."""
        return self.arity == VARIADIC


def _numeric(name: str, labels: tuple[str, ...], description: str, example: str) -> FunctionSignature:
    return FunctionSignature(name, len(labels), labels, ResultRule.NUMERIC, description, example)


ARITHMETIC_FUNCTIONS: dict[str, FunctionSignature] = {
    sig.name: sig
    for sig in (
        _numeric("abs", ("Number",), "Returns the absolute value of a number", "abs(-5) = 5"),
        _numeric("sin", ("Angle (radians)",), "Returns the sine of an angle", "sin(3.14) ≈ 0"),
        _numeric("cos", ("Angle (radians)",), "Returns the cosine of an angle", "cos(0) = 1"),
        _numeric("tan", ("Angle (radians)",), "Returns the tangent of an angle", "tan(0.785) ≈ 1"),
        _numeric("sqrt", ("Number",), "Returns the square root of a number", "sqrt(16) = 4"),
        _numeric("log", ("Number",), "Returns the natural logarithm of a number", "log(2.718) ≈ 1"),
        _numeric("exp", ("Number",), "Returns e raised to the power of a number", "exp(1) ≈ 2.718"),
        _numeric(
            "floor",
            ("Number",),
            "Returns the largest integer less than or equal to a number",
            "floor(3.7) = 3",
        ),
        _numeric(
            "ceil",
            ("Number",),
            "Returns the smallest integer greater than or equal to a number",
            "ceil(3.2) = 4",
        ),
        _numeric("round", ("Number",), "Rounds a number to the nearest integer", "round(3.5) = 4"),
        _numeric(
            "pow",
            ("Base", "Exponent"),
            "Raises a number to the power of another number",
            "pow(2, 3) = 8",
        ),
        _numeric("min", ("Number1", "Number2"), "Returns the smaller of two numbers", "min(5, 3) = 3"),
        _numeric("max", ("Number1", "Number2"), "Returns the larger of two numbers", "max(5, 3) = 5"),
        _numeric(
            "atan2",
            ("Y", "X"),
            "Returns the angle in radians whose tangent is the quotient of its arguments",
            "atan2(1, 1) ≈ 0.785",
        ),
    )
}

LOGICAL_FUNCTIONS: dict[str, FunctionSignature] = {
    "IF": FunctionSignature(
        "IF",
        3,
        ("Condition", "True Value", "False Value"),
        ResultRule.CONDITIONAL,
        "Returns one value if condition is true, another if false",
        "IF({Age} > 18, 1, 0)",
    ),
    "AND": FunctionSignature(
        "AND",
        VARIADIC,
        ("Condition1", "Condition2", "..."),
        ResultRule.ALL_BOOLEAN,
        "Returns true if all conditions are true",
        "AND({Age} > 18, {Income} > 50000)",
    ),
    "OR": FunctionSignature(
        "OR",
        VARIADIC,
        ("Condition1", "Condition2", "..."),
        ResultRule.ALL_BOOLEAN,
        "Returns true if any condition is true",
        "OR({VIP}, {Income} > 100000)",
    ),
    "NOT": FunctionSignature(
        "NOT",
        1,
        ("Condition",),
        ResultRule.NEGATION,
        "Returns the opposite of the condition",
        "NOT({VIP})",
    ),
    "ISNULL": FunctionSignature(
        "ISNULL",
        1,
        ("Value",),
        ResultRule.NULL_CHECK,
        "Returns true if the value is null or empty",
        "ISNULL({Email})",
    ),
    "ISNOTNULL": FunctionSignature(
        "ISNOTNULL",
        1,
        ("Value",),
        ResultRule.NULL_CHECK,
        "Returns true if the value is not null and not empty",
        "ISNOTNULL({Email})",
    ),
}

FUNCTION_SIGNATURES: dict[str, FunctionSignature] = {**ARITHMETIC_FUNCTIONS, **LOGICAL_FUNCTIONS}

# Catalog type strings accepted for each data type; anything else is unknown
_CATALOG_TYPE_MAP = {
    "number": DataType.NUMBER,
    "integer": DataType.NUMBER,
    "float": DataType.NUMBER,
    "double": DataType.NUMBER,
    "decimal": DataType.NUMBER,
    "boolean": DataType.BOOLEAN,
    "bool": DataType.BOOLEAN,
    "string": DataType.STRING,
    "text": DataType.STRING,
    "varchar": DataType.STRING,
}


def get_signature(name: str | None) -> FunctionSignature | None:
    """Look up a function signature by name."""
    if name is None:
        return None
    return FUNCTION_SIGNATURES.get(name)


def is_function_name(word: str) -> bool:
    """Check whether a word is a known function name."""
    return word in FUNCTION_SIGNATURES


def is_operator(word: str) -> bool:
    """Check whether a word is a known operator symbol."""
    return word in ALL_OPERATORS


def data_type_from_catalog(declared_type: str | None) -> DataType:
    """Map a catalog's declared type string into the data type lattice.

    Args:
        declared_type: Type string as declared by the attribute catalog.

    Returns:
        DataType: Matching data type, or ``DataType.UNKNOWN`` when unrecognized.
    """
    if not declared_type:
        return DataType.UNKNOWN
    return _CATALOG_TYPE_MAP.get(declared_type.strip().lower(), DataType.UNKNOWN)
