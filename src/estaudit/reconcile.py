from __future__ import annotations

from typing import Optional, Union

from .config import DEFAULT_CONFIG, Config
from .models import NOT_AVAILABLE, ErrorSeverity, Reconciliation, to_number


def classify_error(error_percentage: Union[float, str], config: Config = DEFAULT_CONFIG) -> ErrorSeverity:
    if not isinstance(error_percentage, (int, float)):
        return ErrorSeverity.UNKNOWN
    if error_percentage <= config.severity_low_max:
        return ErrorSeverity.LOW
    if error_percentage <= config.severity_medium_max:
        return ErrorSeverity.MEDIUM
    return ErrorSeverity.HIGH


def apply_discount(value: float, discount_provided: float) -> float:
    if discount_provided > 0:
        return value * (1 - discount_provided / 100)
    return value


def reconcile(
    multiplier: Optional[float],
    true_cost: object | None,
    discount_provided: object | None,
    price: object | None,
    config: Config = DEFAULT_CONFIG,
) -> Reconciliation:
    """
    Compare the price a multiplier should have produced with the recorded price.

    The expected price is ``true_cost * multiplier`` net of the discount
    percentage.  The error percentage is rounded to two decimals before it is
    classified; it is ``"N/A"`` when the multiplier, cost, or price do not
    allow a meaningful comparison.  The discount-adjusted multiplier is for
    display only and does not feed the error.
    """

    cost = to_number(true_cost)
    recorded = to_number(price)
    discount = to_number(discount_provided) or 0.0

    expected = None
    expected_after_discount = None
    adjusted_multiplier = None
    if multiplier is not None:
        adjusted_multiplier = round(apply_discount(multiplier, discount), 2) if discount > 0 else multiplier
        if cost is not None:
            expected = cost * multiplier
            expected_after_discount = apply_discount(expected, discount)

    comparable = (
        expected_after_discount is not None
        and multiplier > 0
        and cost > 0
        and recorded is not None
        and recorded > 0
    )
    if not comparable:
        return Reconciliation(
            expected_price=expected,
            expected_price_after_discount=expected_after_discount,
            absolute_error=None,
            error_percentage=NOT_AVAILABLE,
            error_severity=ErrorSeverity.UNKNOWN,
            discount_adjusted_multiplier=adjusted_multiplier,
        )

    absolute_error = abs(expected_after_discount - recorded)
    error_percentage = round(absolute_error / recorded * 100, 2)
    return Reconciliation(
        expected_price=expected,
        expected_price_after_discount=expected_after_discount,
        absolute_error=absolute_error,
        error_percentage=error_percentage,
        error_severity=classify_error(error_percentage, config),
        discount_adjusted_multiplier=adjusted_multiplier,
    )
