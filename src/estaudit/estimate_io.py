"""Reading exported estimate documents and writing audit artifacts."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional

from .config import Config
from .reporting import estimates_frame, summary_frame

if TYPE_CHECKING:
    from .pipeline import AuditResult

logger = logging.getLogger(__name__)


def load_estimate_records(path: Path) -> List[Mapping]:
    """
    Load estimate documents from a JSON export.

    Accepts a bare list of documents, a paginated API payload with a ``docs``
    list, or a single document.  Non-object entries are dropped.
    """

    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(payload, Mapping):
        docs = payload.get("docs")
        if isinstance(docs, list):
            payload = docs
        else:
            payload = [payload]
    if not isinstance(payload, list):
        raise ValueError(f"{path} does not contain a list of estimate documents")
    records = [entry for entry in payload if isinstance(entry, Mapping)]
    dropped = len(payload) - len(records)
    if dropped:
        logger.warning("Warning: ignored %s non-object entries in %s", dropped, path)
    return records


def write_outputs(
    result: AuditResult,
    config: Config,
    extra_metadata: Optional[Mapping[str, object]] = None,
) -> Dict[str, Path]:
    """Write the per-estimate audit CSV, the branch summary CSV and run metadata."""

    config.output_dir.mkdir(parents=True, exist_ok=True)
    estimates_frame(result.resolved).to_csv(config.output_audit, index=False)
    summary_frame(result.summaries).to_csv(config.output_summary, index=False)

    metadata: Dict[str, object] = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "input": str(config.input_path) if config.input_path else None,
        "estimates_audited": len(result.resolved),
        "estimates_skipped": result.skipped,
        "branches": [summary.branch_name for summary in result.summaries],
        "policy": {
            "statutory_tax_rate": config.statutory_tax_rate,
            "taxed_branches": list(config.taxed_branches),
            "standard_brackets": [list(pair) for pair in config.standard_brackets],
            "subcontracted_rule_enabled": config.subcontracted_rule_enabled,
            "subcontract_honors_override": config.subcontract_honors_override,
            "fallback_cost_basis": config.fallback_cost_basis,
        },
    }
    if extra_metadata:
        metadata.update(extra_metadata)
    config.output_metadata.write_text(json.dumps(metadata, indent=2, default=str), encoding="utf-8")

    return {
        "audit_csv": config.output_audit,
        "summary_csv": config.output_summary,
        "run_metadata": config.output_metadata,
    }
