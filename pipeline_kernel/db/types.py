"""
Module: pipeline_kernel.db.types
Responsibility: Annotated column type aliases and score coercion helpers.
    Centralizes the precision of evaluation scores and the width of stage
    keys so that every model and service uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - Scores are Decimal with two decimal places.  No floats are stored.
    - score_from_value() is the ONLY sanctioned conversion from caller input
      (int, float, str, Decimal) to a score.

Failure modes:
    - InvalidScoreError on non-numeric, NaN or infinite input.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Annotated

from sqlalchemy import Numeric, String, Text

# Evaluation score, 0.00 .. 10.00
Score = Annotated[Decimal, Numeric(4, 2)]

# Opaque stage key, unique per job
StageKey = Annotated[str, String(100)]

# Short identifier strings
ShortCode = Annotated[str, String(50)]

# Names and titles
ShortText = Annotated[str, String(255)]

# Free-form comments and observations
LongText = Annotated[str, Text]

SCORE_DECIMAL_PLACES = 2


class InvalidScoreError(ValueError):
    """Raised when a score value cannot be read as a finite number."""

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid score value: {value!r}")


def score_from_value(value: int | float | str | Decimal | None) -> Decimal | None:
    """
    Convert caller input into a Decimal score, unrounded.

    Floats go through str() so 7.1 becomes Decimal("7.1"), not its binary
    expansion.  Range checks belong to the transition rules, not here.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidScoreError(value)
    try:
        if isinstance(value, float):
            result = Decimal(str(value))
        else:
            result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidScoreError(value) from None
    if not result.is_finite():
        raise InvalidScoreError(value)
    return result


def round_score(value: Decimal) -> Decimal:
    """Quantize a score to the stored precision."""
    quantum = Decimal(1).scaleb(-SCORE_DECIMAL_PLACES)
    return value.quantize(quantum, rounding=ROUND_HALF_UP)
