import argparse
import logging
import os
from pathlib import Path
from typing import Optional, Sequence

from dotenv import load_dotenv

from .analysis import multiplier_pattern_frame, pattern_statistics
from .config import Config
from .config import load_config as load_runtime_config
from .estimate_io import load_estimate_records, write_outputs
from .pipeline import audit_estimates
from .policy import apply_policy_defaults
from .reporting import make_summary_text

BASE_DIR = Path(__file__).resolve().parents[2]
DEFAULT_POLICY = BASE_DIR / "references" / "policy" / "policy.json"

logger = logging.getLogger(__name__)


def run(runtime_config: Config) -> int:
    """Audit the estimates in ``runtime_config.input_path`` and write the outputs."""

    stage_counter = 0

    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(message)s")

    def log_stage(message: str) -> None:
        nonlocal stage_counter
        stage_counter += 1
        logger.info("[audit:%02d] %s", stage_counter, message)

    def log_detail(message: str) -> None:
        logger.info("          %s", message)

    input_path = runtime_config.input_path
    if input_path is None:
        logger.error("No estimates file provided; pass --input or set ESTIMATES_JSON.")
        return 2
    if not input_path.exists():
        logger.error("Estimates file not found: %s", input_path)
        return 2

    log_stage(f"Loading estimates from {input_path}")
    records = load_estimate_records(input_path)
    log_detail(f"documents loaded: {len(records)}")

    filters = []
    if runtime_config.sold_only:
        filters.append("status=sold")
    if runtime_config.branch_filter:
        filters.append(f"branch={runtime_config.branch_filter}")
    log_stage("Resolving multipliers" + (f" ({', '.join(filters)})" if filters else ""))
    result = audit_estimates(records, runtime_config)
    log_detail(f"estimates audited: {len(result.resolved)} | skipped: {result.skipped}")

    for item in result.resolved:
        logger.debug(
            "[estimate] %s :: base_cost=%s | multiplier=%s (%s) | error=%s (%s)",
            item.estimate.name or item.estimate.id or "(unnamed)",
            f"{item.base_cost:,.2f}",
            item.multiplier,
            item.multiplier_source.value,
            item.error_percentage,
            item.error_severity.value,
        )

    log_stage("Analyzing multiplier pattern")
    pattern = pattern_statistics(multiplier_pattern_frame(result.resolved))
    if pattern["mean_difference"] is not None:
        log_detail(
            "difference vs implied multiplier: mean=%.2f max=%.2f min=%.2f"
            % (pattern["mean_difference"], pattern["max_difference"], pattern["min_difference"])
        )
    log_detail(f"sources: {pattern['source_counts']}")

    log_stage(f"Writing outputs to {runtime_config.output_dir}")
    artifacts = write_outputs(result, runtime_config, extra_metadata={"multiplier_pattern": pattern})

    logger.info("\n=== SUMMARY ===\n")
    logger.info("%s", make_summary_text(result.summaries, result.resolved))
    logger.info("Outputs written:")
    for path in artifacts.values():
        logger.info(" - %s", path)
    return 0


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Reconstruct pricing multipliers for exported job estimates and flag anomalies"
    )
    parser.add_argument("--input", help="JSON export of job-estimate documents")
    parser.add_argument("--output-dir", help="Directory for generated outputs")
    parser.add_argument("--policy", help="Policy JSON providing default pricing/tax settings")
    parser.add_argument("--sold-only", action="store_true", help="Audit only estimates with status sold")
    parser.add_argument("--branch", help="Restrict the audit to one branch name")
    parser.add_argument("-v", "--verbose", action="store_true", help="Increase logging verbosity")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    load_dotenv(BASE_DIR / ".env")
    args = parse_args(argv)
    policy_path = Path(args.policy or os.environ.get("POLICY_JSON") or DEFAULT_POLICY)
    apply_policy_defaults(policy_path)
    runtime_cfg = load_runtime_config(os.environ, args)
    log_level = logging.DEBUG if runtime_cfg.verbose else logging.INFO
    logging.basicConfig(level=log_level, format="%(message)s")
    try:
        return run(runtime_cfg)
    except Exception:  # pragma: no cover - defensive
        logger.exception("Fatal error during estimate audit")
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
