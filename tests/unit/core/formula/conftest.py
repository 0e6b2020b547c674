"""Shared fixtures for formula engine tests."""

import pytest

from formulabase.core.formula import InMemoryCatalog


@pytest.fixture
def catalog() -> InMemoryCatalog:
    """Catalog used throughout the formula tests.

    Attribute names double as ids.
    """
    return InMemoryCatalog.from_types(
        {
            "Price": "number",
            "Quantity": "integer",
            "VIP": "boolean",
            "Name": "string",
            "Email": "text",
            "Created": "date",
        }
    )
