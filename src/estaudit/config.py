from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from types import SimpleNamespace
from typing import Mapping, Optional


_BOOLEAN_TRUE = {"1", "true", "yes", "on"}
_BOOLEAN_FALSE = {"0", "false", "no", "off"}

DEFAULT_STATUTORY_TAX_RATE = 0.101
DEFAULT_TAXED_BRANCHES: tuple[str, ...] = ("kent", "everett")
DEFAULT_BRANCH_TAX_RATES: tuple[tuple[str, float], ...] = (
    ("kent", DEFAULT_STATUTORY_TAX_RATE),
    ("everett", DEFAULT_STATUTORY_TAX_RATE),
)
# (exclusive lower bound, multiplier), evaluated highest threshold first
DEFAULT_STANDARD_BRACKETS: tuple[tuple[float, float], ...] = (
    (6000.0, 2.25),
    (1700.0, 2.5),
    (0.0, 2.75),
)
COST_BASIS_CHOICES = ("base", "true")


@dataclass(frozen=True)
class Config:
    """Pricing policy and runtime options assembled from environment variables and CLI options."""

    statutory_tax_rate: float = DEFAULT_STATUTORY_TAX_RATE
    taxed_branches: tuple[str, ...] = DEFAULT_TAXED_BRANCHES
    branch_tax_rates: tuple[tuple[str, float], ...] = DEFAULT_BRANCH_TAX_RATES
    standard_brackets: tuple[tuple[float, float], ...] = DEFAULT_STANDARD_BRACKETS
    severity_low_max: float = 5.0
    severity_medium_max: float = 10.0
    subcontracted_rule_enabled: bool = True
    subcontract_honors_override: bool = False
    fallback_cost_basis: str = "base"
    global_info_range_key: str = "2"
    sold_only: bool = False
    branch_filter: Optional[str] = None
    input_path: Optional[Path] = None
    output_dir: Path = Path("outputs")
    policy_path: Optional[Path] = None
    verbose: bool = False

    @property
    def output_audit(self) -> Path:
        return self.output_dir / "Estimate_Audit.csv"

    @property
    def output_summary(self) -> Path:
        return self.output_dir / "Branch_Summary.csv"

    @property
    def output_metadata(self) -> Path:
        return self.output_dir / "run_metadata.json"


def _to_path(value: object | None) -> Optional[Path]:
    if value is None:
        return None
    if isinstance(value, Path):
        return value.expanduser().resolve()
    text = str(value).strip()
    if not text:
        return None
    return Path(text).expanduser().resolve()


def _to_float(value: object | None) -> Optional[float]:
    if value is None:
        return None
    text = str(value).replace("%", "").replace(",", "").strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def _flag(value: object | None, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _BOOLEAN_TRUE:
        return True
    if text in _BOOLEAN_FALSE:
        return False
    return default


def _to_keywords(value: object | None) -> Optional[tuple[str, ...]]:
    if value is None:
        return None
    keywords = tuple(part.strip().lower() for part in str(value).split(",") if part.strip())
    return keywords or None


def _to_rate_map(value: object | None) -> Optional[tuple[tuple[str, float], ...]]:
    """Parse ``"kent=0.101,everett=0.101"`` into ``(keyword, rate)`` pairs."""

    if value is None:
        return None
    pairs: list[tuple[str, float]] = []
    for part in str(value).split(","):
        if "=" not in part:
            continue
        keyword, _, rate_text = part.partition("=")
        rate = _to_float(rate_text)
        keyword = keyword.strip().lower()
        if keyword and rate is not None:
            pairs.append((keyword, rate))
    return tuple(pairs) or None


def _to_brackets(value: object | None) -> Optional[tuple[tuple[float, float], ...]]:
    """Parse ``"6000:2.25,1700:2.5,0:2.75"``; returned highest threshold first."""

    if value is None:
        return None
    brackets: list[tuple[float, float]] = []
    for part in str(value).split(","):
        if ":" not in part:
            continue
        threshold_text, _, multiplier_text = part.partition(":")
        threshold = _to_float(threshold_text)
        multiplier = _to_float(multiplier_text)
        if threshold is None or multiplier is None:
            return None
        brackets.append((threshold, multiplier))
    if not brackets:
        return None
    return tuple(sorted(brackets, key=lambda pair: pair[0], reverse=True))


def _namespace(cli_args: object | None) -> SimpleNamespace:
    if cli_args is None:
        return SimpleNamespace()
    if isinstance(cli_args, SimpleNamespace):
        return cli_args
    if hasattr(cli_args, "__dict__"):
        return SimpleNamespace(**{k: v for k, v in vars(cli_args).items()})
    return SimpleNamespace()


def load_config(env: Mapping[str, str], cli_args: object | None = None) -> Config:
    """Build a runtime :class:`Config` from environment variables and CLI options.

    Unparseable values fall back to the built-in policy defaults.
    """

    defaults = Config()

    statutory_tax_rate = _to_float(env.get("STATUTORY_TAX_RATE"))
    if statutory_tax_rate is None:
        statutory_tax_rate = defaults.statutory_tax_rate
    taxed_branches = _to_keywords(env.get("TAXED_BRANCHES")) or defaults.taxed_branches
    branch_tax_rates = _to_rate_map(env.get("BRANCH_TAX_RATES"))
    if branch_tax_rates is None:
        # Keep the per-branch table consistent with an overridden statutory rate.
        branch_tax_rates = tuple((keyword, statutory_tax_rate) for keyword in taxed_branches)
    standard_brackets = _to_brackets(env.get("STANDARD_BRACKETS")) or defaults.standard_brackets
    severity_low_max = _to_float(env.get("SEVERITY_LOW_MAX"))
    if severity_low_max is None:
        severity_low_max = defaults.severity_low_max
    severity_medium_max = _to_float(env.get("SEVERITY_MEDIUM_MAX"))
    if severity_medium_max is None:
        severity_medium_max = defaults.severity_medium_max
    subcontracted_rule_enabled = _flag(env.get("SUBCONTRACTED_RULE_ENABLED"), default=True)
    subcontract_honors_override = _flag(env.get("SUBCONTRACT_HONORS_OVERRIDE"))
    fallback_cost_basis = str(env.get("FALLBACK_COST_BASIS") or defaults.fallback_cost_basis).strip().lower()
    if fallback_cost_basis not in COST_BASIS_CHOICES:
        fallback_cost_basis = defaults.fallback_cost_basis
    global_info_range_key = str(env.get("GLOBAL_INFO_RANGE_KEY") or defaults.global_info_range_key).strip()
    sold_only = _flag(env.get("SOLD_ONLY"))
    branch_filter = (env.get("BRANCH_FILTER") or "").strip() or None
    input_path = _to_path(env.get("ESTIMATES_JSON"))
    output_dir = _to_path(env.get("OUTPUT_DIR")) or defaults.output_dir.resolve()
    policy_path = _to_path(env.get("POLICY_JSON"))
    verbose = False

    cli_ns = _namespace(cli_args)
    if getattr(cli_ns, "input", None):
        input_path = _to_path(cli_ns.input)
    if getattr(cli_ns, "output_dir", None):
        output_dir = _to_path(cli_ns.output_dir) or output_dir
    if getattr(cli_ns, "policy", None):
        policy_path = _to_path(cli_ns.policy)
    if getattr(cli_ns, "sold_only", False):
        sold_only = True
    if getattr(cli_ns, "branch", None):
        branch_filter = str(cli_ns.branch).strip() or branch_filter
    if getattr(cli_ns, "verbose", False):
        verbose = bool(cli_ns.verbose)

    return Config(
        statutory_tax_rate=statutory_tax_rate,
        taxed_branches=taxed_branches,
        branch_tax_rates=branch_tax_rates,
        standard_brackets=standard_brackets,
        severity_low_max=severity_low_max,
        severity_medium_max=severity_medium_max,
        subcontracted_rule_enabled=subcontracted_rule_enabled,
        subcontract_honors_override=subcontract_honors_override,
        fallback_cost_basis=fallback_cost_basis,
        global_info_range_key=global_info_range_key,
        sold_only=sold_only,
        branch_filter=branch_filter,
        input_path=input_path,
        output_dir=output_dir,
        policy_path=policy_path,
        verbose=verbose,
    )


DEFAULT_CONFIG = Config()

__all__ = ["Config", "DEFAULT_CONFIG", "load_config"]
