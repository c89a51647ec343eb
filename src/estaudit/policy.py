from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import MutableMapping, Optional

logger = logging.getLogger(__name__)

# Top-level policy keys accepted as shorthand for their environment variables.
POLICY_KEYS = {
    "statutory_tax_rate": "STATUTORY_TAX_RATE",
    "taxed_branches": "TAXED_BRANCHES",
    "branch_tax_rates": "BRANCH_TAX_RATES",
    "standard_brackets": "STANDARD_BRACKETS",
    "severity_low_max": "SEVERITY_LOW_MAX",
    "severity_medium_max": "SEVERITY_MEDIUM_MAX",
}

# A policy value is not applied when the caller already set the broader
# variable it is derived from; load_config derives it from that variable.
DERIVED_FROM = {
    "BRANCH_TAX_RATES": "STATUTORY_TAX_RATE",
}


def _format_value(value: object) -> str:
    if isinstance(value, (list, tuple)):
        return ",".join(_format_value(item) for item in value)
    if isinstance(value, dict):
        return ",".join(f"{key}={val}" for key, val in value.items())
    return str(value)


def apply_policy_defaults(path: Path, environ: Optional[MutableMapping[str, str]] = None) -> dict[str, str]:
    """Set default environment variables from a policy JSON if not already set.

    This is intentionally conservative: only missing env vars are set.  Returns
    the variables that were applied.
    """
    target = os.environ if environ is None else environ
    if not path.exists():
        return {}
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Warning: unable to read policy file %s: %s", path, exc)
        return {}
    if not isinstance(payload, dict):
        logger.warning("Warning: policy file %s is not a JSON object", path)
        return {}

    env_defaults = dict(payload.get("env_defaults") or {})
    for key, env_name in POLICY_KEYS.items():
        if key in payload:
            env_defaults.setdefault(env_name, payload[key])

    caller_set = {key for key, value in target.items() if str(value).strip()}
    applied: dict[str, str] = {}
    for key, value in env_defaults.items():
        general = DERIVED_FROM.get(key)
        if general in caller_set:
            logger.debug("Policy %s skipped; derived from caller-provided %s", key, general)
            continue
        if str(target.get(key, "")).strip() == "":
            target[key] = _format_value(value)
            applied[key] = target[key]
    if applied:
        logger.debug("Policy defaults applied from %s: %s", path, sorted(applied))
    return applied
