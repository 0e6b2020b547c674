"""FormulaBase - typed formula expressions over an attribute catalog.

Parses formula text into a flat node store, serializes it back to canonical
text, and validates structure and types without evaluating anything.
"""

__version__ = "0.1.0"

from formulabase.core.formula import (
    check_formula,
    infer_types,
    parse,
    serialize,
    validate_structure,
)

__all__ = [
    "parse",
    "serialize",
    "validate_structure",
    "infer_types",
    "check_formula",
    "__version__",
]
