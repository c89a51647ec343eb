from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Union

NOT_AVAILABLE = "N/A"
UNASSIGNED_BRANCH = "Unassigned"


def to_number(value: object | None) -> Optional[float]:
    """Coerce upstream numeric fields (numbers or numeric strings) to ``float``.

    Returns ``None`` for missing, boolean, NaN, or unparseable values.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        numeric = float(value)
    else:
        text = str(value).replace("$", "").replace(",", "").strip()
        if not text:
            return None
        try:
            numeric = float(text)
        except ValueError:
            return None
    if math.isnan(numeric):
        return None
    return numeric


class MultiplierSource(str, Enum):
    """Resolution rule that produced an estimate's multiplier."""

    OVERRIDE = "Override"
    SNAPSHOT_RANGE = "SnapshotRange"
    GLOBAL_INFO_INDEX = "GlobalInfoIndex"
    FIRST_RANGE_FALLBACK = "FirstRangeFallback"
    STANDARD_BRACKET = "StandardBracket"
    SUBCONTRACTED_STANDARD_BRACKET = "SubcontractedStandardBracket"
    UNRESOLVED = "Unresolved"


class ErrorSeverity(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    UNKNOWN = "Unknown"


class TaxTreatment(str, Enum):
    RECORDED = "Recorded"
    STATUTORY = "Statutory"
    UNTAXED = "Untaxed"


@dataclass(frozen=True)
class RawEstimate:
    """Normalized view of one upstream job-estimate document."""

    id: Optional[str] = None
    name: str = ""
    status: str = ""
    branch_name: Optional[str] = None
    true_cost: Optional[float] = None
    sub_services_retail_cost: Optional[float] = None
    final_price: Optional[float] = None
    multiplier_override: Optional[float] = None
    discount_provided: float = 0.0
    retail_cost: Optional[float] = None
    final_price_after_taxes: Optional[float] = None
    snapshot: Any = None
    global_info: Mapping[str, Any] = field(default_factory=dict)
    created_by: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def normalized_status(self) -> str:
        return (self.status or "").strip().lower()

    @property
    def is_sold(self) -> bool:
        return self.normalized_status == "sold"

    @classmethod
    def from_record(cls, record: object) -> "RawEstimate":
        """Build an estimate from an upstream mapping, defaulting every missing field."""

        if isinstance(record, RawEstimate):
            return record
        if not isinstance(record, Mapping):
            return cls()

        branch = record.get("branch")
        if isinstance(branch, Mapping):
            branch_name = branch.get("name")
        else:
            branch_name = branch
        if branch_name is not None and not isinstance(branch_name, str):
            branch_name = str(branch_name)

        tax_details = record.get("tax_details")
        after_taxes = None
        if isinstance(tax_details, Mapping):
            after_taxes = to_number(tax_details.get("final_price_after_taxes"))

        user = record.get("user")
        created_by = user.get("name") if isinstance(user, Mapping) else None

        global_info = record.get("global_info")
        if not isinstance(global_info, Mapping):
            global_info = {}

        raw_id = record.get("id")
        return cls(
            id=None if raw_id is None else str(raw_id),
            name=str(record.get("name") or ""),
            status=str(record.get("status") or ""),
            branch_name=branch_name,
            true_cost=to_number(record.get("true_cost")),
            sub_services_retail_cost=to_number(record.get("sub_services_retail_cost")),
            final_price=to_number(record.get("final_price")),
            multiplier_override=to_number(record.get("multiplierOverride")),
            discount_provided=to_number(record.get("discount_provided")) or 0.0,
            retail_cost=to_number(record.get("retail_cost")),
            final_price_after_taxes=after_taxes,
            snapshot=record.get("estimateSnapshot"),
            global_info=dict(global_info),
            created_by=created_by,
            created_at=record.get("createdAt"),
            updated_at=record.get("updatedAt"),
        )


@dataclass(frozen=True)
class MultiplierRange:
    """One cost bracket from an estimate's rate-table snapshot."""

    min_cost: float = 0.0
    max_cost: float = math.inf
    lowest_multiple: Optional[float] = None
    highest_multiple: Optional[float] = None

    @property
    def usable(self) -> bool:
        return self.lowest_multiple is not None

    def contains(self, cost: float) -> bool:
        return self.min_cost <= cost <= self.max_cost

    @property
    def label(self) -> str:
        upper = "inf" if math.isinf(self.max_cost) else f"{self.max_cost:g}"
        return f"{self.min_cost:g}-{upper}"


@dataclass(frozen=True)
class CostSplit:
    true_cost: float
    sub_cost: float
    base_cost: float

    @property
    def has_sub_cost(self) -> bool:
        return self.sub_cost > 0


@dataclass(frozen=True)
class MultiplierResolution:
    """Tagged result of the multiplier precedence chain."""

    multiplier: Optional[float]
    source: MultiplierSource
    rule: str = ""
    matched_range: Optional[MultiplierRange] = None

    @property
    def resolved(self) -> bool:
        return self.multiplier is not None


@dataclass(frozen=True)
class TaxAdjustment:
    adjusted_price: Optional[float]
    treatment: TaxTreatment
    rate: Optional[float] = None


@dataclass(frozen=True)
class Reconciliation:
    """Expected-versus-recorded price comparison for one estimate."""

    expected_price: Optional[float]
    expected_price_after_discount: Optional[float]
    absolute_error: Optional[float]
    error_percentage: Union[float, str]
    error_severity: ErrorSeverity
    discount_adjusted_multiplier: Optional[float] = None


@dataclass(frozen=True)
class ResolvedEstimate:
    """An estimate with its reconstructed multiplier, tax-adjusted price and audit verdict."""

    estimate: RawEstimate
    split: CostSplit
    resolution: MultiplierResolution
    tax: TaxAdjustment
    reconciliation: Reconciliation
    after_sub_multiplier: Optional[float] = None

    @property
    def branch_name(self) -> Optional[str]:
        return self.estimate.branch_name

    @property
    def multiplier(self) -> Optional[float]:
        return self.resolution.multiplier

    @property
    def multiplier_source(self) -> MultiplierSource:
        return self.resolution.source

    @property
    def base_cost(self) -> float:
        return self.split.base_cost

    @property
    def adjusted_price(self) -> Optional[float]:
        return self.tax.adjusted_price

    @property
    def error_percentage(self) -> Union[float, str]:
        return self.reconciliation.error_percentage

    @property
    def error_severity(self) -> ErrorSeverity:
        return self.reconciliation.error_severity


@dataclass(frozen=True)
class BranchSummary:
    branch_name: str
    estimate_count: int
    total_adjusted_value: float
    average_multiplier: Optional[float]
