from __future__ import annotations

import logging
from typing import Optional

from .config import DEFAULT_CONFIG, Config
from .models import TaxAdjustment, TaxTreatment, to_number

logger = logging.getLogger(__name__)


def is_taxed_branch(branch_name: Optional[str], config: Config = DEFAULT_CONFIG) -> bool:
    """True when ``branch_name`` contains any configured taxed-branch keyword (case-insensitive)."""

    if not branch_name:
        return False
    lowered = branch_name.lower()
    return any(keyword in lowered for keyword in config.taxed_branches)


def statutory_rate_for(branch_name: Optional[str], config: Config = DEFAULT_CONFIG) -> float:
    lowered = (branch_name or "").lower()
    for keyword, rate in config.branch_tax_rates:
        if keyword in lowered:
            return rate
    return config.statutory_tax_rate


def adjust_for_tax(
    final_price: object | None,
    branch_name: Optional[str],
    final_price_after_taxes: object | None = None,
    config: Config = DEFAULT_CONFIG,
) -> TaxAdjustment:
    """
    Normalize a recorded sale price for branch taxation.

    Taxed branches prefer the recorded after-tax price verbatim, since it may
    carry fees or rounding a flat rate cannot reproduce.  Without a recorded
    value the branch's statutory rate is applied and the product is
    returned unrounded.  Untaxed branches keep ``final_price`` unchanged.
    """

    price = to_number(final_price)
    if not is_taxed_branch(branch_name, config):
        return TaxAdjustment(adjusted_price=price, treatment=TaxTreatment.UNTAXED)

    recorded = to_number(final_price_after_taxes)
    if recorded:
        return TaxAdjustment(adjusted_price=recorded, treatment=TaxTreatment.RECORDED)

    rate = statutory_rate_for(branch_name, config)
    if price is None:
        logger.debug("Taxed branch %r has no final price; adjusted price unavailable", branch_name)
        return TaxAdjustment(adjusted_price=None, treatment=TaxTreatment.STATUTORY, rate=rate)
    return TaxAdjustment(
        adjusted_price=price * (1 + rate),
        treatment=TaxTreatment.STATUTORY,
        rate=rate,
    )
