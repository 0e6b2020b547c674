"""Formula Expression Engine API."""

from dataclasses import dataclass, field

from .catalog import AttributeCatalog, AttributeInfo, InMemoryCatalog, load_catalog
from .exceptions import FormulaError, FormulaParseError
from .lexer import Diagnostic, FunctionSpan, Lexer, function_spans
from .nodes import Node, NodeKind, NodeStore
from .parser import Parser, ParseResult
from .serializer import serialize
from .signatures import FUNCTION_SIGNATURES, DataType, FunctionSignature
from .structure_validator import BrokenConnection, FormulaIssue, StructureReport, validate_structure
from .type_checker import TypeReport, infer_types

def parse_formula(text: str, catalog: AttributeCatalog, max_depth: int | None = None) -> ParseResult:
    """Parse formula text into a node store, keeping diagnostics for dropped input."""
    lexer = Lexer(text)
    parser = Parser(lexer, catalog, max_depth=max_depth)
    return parser.parse()

def parse(text: str, catalog: AttributeCatalog) -> NodeStore:
    """Parse formula text into a node store."""
    return parse_formula(text, catalog).store

@dataclass
class FormulaCheck:
    """Everything known about one formula text."""
    store: NodeStore
    canonical: str
    diagnostics: list[Diagnostic] = field(default_factory=list)
    structure: StructureReport = field(default_factory=StructureReport)
    types: TypeReport = field(default_factory=TypeReport)

    @property
    def is_valid(self) -> bool:
        """Check whether the formula has no structural or type errors."""
        return self.structure.is_valid and self.types.is_valid

def check_formula(text: str, catalog: AttributeCatalog) -> FormulaCheck:
    """Parse, serialize, validate and type-check a formula in one call."""
    result = parse_formula(text, catalog)
    return FormulaCheck(
        store=result.store,
        canonical=serialize(result.store, catalog),
        diagnostics=result.diagnostics,
        structure=validate_structure(result.store, catalog),
        types=infer_types(result.store, catalog),
    )

__all__ = [
    "parse",
    "parse_formula",
    "serialize",
    "validate_structure",
    "infer_types",
    "check_formula",
    "function_spans",
    "AttributeCatalog",
    "AttributeInfo",
    "BrokenConnection",
    "DataType",
    "Diagnostic",
    "FormulaCheck",
    "FormulaError",
    "FormulaIssue",
    "FormulaParseError",
    "FunctionSignature",
    "FunctionSpan",
    "FUNCTION_SIGNATURES",
    "InMemoryCatalog",
    "Node",
    "NodeKind",
    "NodeStore",
    "ParseResult",
    "StructureReport",
    "TypeReport",
    "load_catalog",
]
