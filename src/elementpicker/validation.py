from __future__ import annotations

import logging

from .document import InvalidExpression, LiveDocument
from .models import Dialect, ExpressionError, ExpressionResult, ExpressionTest

LOGGER = logging.getLogger("elementpicker.engine")


def test_expression(document: LiveDocument, expression: str, dialect: Dialect | None = None) -> ExpressionResult:
    """Count the matches of a user supplied expression without raising."""
    try:
        matches = document.query(expression, dialect)
    except InvalidExpression as exc:
        LOGGER.info("Expression test failed: %s", exc)
        return ExpressionError(message=str(exc))
    return ExpressionTest(match_count=len(matches), matched=bool(matches))


# pytest would otherwise collect this function wherever a test module imports it.
test_expression.__test__ = False  # type: ignore[attr-defined]
