from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from .config import load_config
from .cli import run as run_audit


@dataclass
class AuditOptions:
    input_path: Path
    output_dir: Optional[Path] = None
    sold_only: bool = False
    branch: Optional[str] = None
    statutory_tax_rate: Optional[float] = None


def audit(options: AuditOptions) -> Dict[str, Path]:
    """Programmatic interface to run the audit and return artifact paths.

    Returns a dict with keys: audit_csv, summary_csv, run_metadata.
    """
    import os

    env = dict(os.environ)
    env["ESTIMATES_JSON"] = str(options.input_path)
    if options.output_dir:
        env["OUTPUT_DIR"] = str(options.output_dir)
    if options.sold_only:
        env["SOLD_ONLY"] = "1"
    if options.branch:
        env["BRANCH_FILTER"] = options.branch
    if options.statutory_tax_rate is not None:
        env["STATUTORY_TAX_RATE"] = str(options.statutory_tax_rate)

    cfg = load_config(env, None)
    rc = run_audit(runtime_config=cfg)
    if rc != 0:
        raise RuntimeError(f"Estimate audit failed with code {rc}")
    return {
        "audit_csv": cfg.output_audit,
        "summary_csv": cfg.output_summary,
        "run_metadata": cfg.output_metadata,
    }
