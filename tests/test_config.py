from __future__ import annotations

import argparse
from pathlib import Path

from estaudit.config import DEFAULT_CONFIG, load_config


def test_defaults_without_environment() -> None:
    cfg = load_config({})
    assert cfg.statutory_tax_rate == DEFAULT_CONFIG.statutory_tax_rate
    assert cfg.taxed_branches == ("kent", "everett")
    assert cfg.standard_brackets == ((6000.0, 2.25), (1700.0, 2.5), (0.0, 2.75))
    assert cfg.subcontracted_rule_enabled is True
    assert cfg.subcontract_honors_override is False
    assert cfg.fallback_cost_basis == "base"
    assert cfg.input_path is None
    assert cfg.output_audit.name == "Estimate_Audit.csv"


def test_environment_values_are_parsed(tmp_path: Path) -> None:
    env = {
        "STATUTORY_TAX_RATE": "0.095",
        "TAXED_BRANCHES": "Tacoma, Kent ,",
        "STANDARD_BRACKETS": "0:3,1700:2.5,6000:2",
        "SEVERITY_LOW_MAX": "2",
        "SEVERITY_MEDIUM_MAX": "8%",
        "SUBCONTRACTED_RULE_ENABLED": "off",
        "SUBCONTRACT_HONORS_OVERRIDE": "yes",
        "FALLBACK_COST_BASIS": "TRUE",
        "GLOBAL_INFO_RANGE_KEY": " 3 ",
        "SOLD_ONLY": "1",
        "BRANCH_FILTER": " Kent -WA ",
        "ESTIMATES_JSON": str(tmp_path / "estimates.json"),
        "OUTPUT_DIR": str(tmp_path / "out"),
    }
    cfg = load_config(env)
    assert cfg.statutory_tax_rate == 0.095
    assert cfg.taxed_branches == ("tacoma", "kent")
    assert cfg.branch_tax_rates == (("tacoma", 0.095), ("kent", 0.095))
    assert cfg.standard_brackets == ((6000.0, 2.0), (1700.0, 2.5), (0.0, 3.0))
    assert cfg.severity_low_max == 2.0
    assert cfg.severity_medium_max == 8.0
    assert cfg.subcontracted_rule_enabled is False
    assert cfg.subcontract_honors_override is True
    assert cfg.fallback_cost_basis == "true"
    assert cfg.global_info_range_key == "3"
    assert cfg.sold_only is True
    assert cfg.branch_filter == "Kent -WA"
    assert cfg.input_path == (tmp_path / "estimates.json").resolve()
    assert cfg.output_metadata == (tmp_path / "out").resolve() / "run_metadata.json"


def test_explicit_branch_rates_win() -> None:
    cfg = load_config({"BRANCH_TAX_RATES": "kent=0.101, everett = 0.099, bogus"})
    assert cfg.branch_tax_rates == (("kent", 0.101), ("everett", 0.099))


def test_invalid_values_fall_back_to_defaults() -> None:
    cfg = load_config(
        {
            "STATUTORY_TAX_RATE": "abc",
            "STANDARD_BRACKETS": "6000:x,0:2.75",
            "FALLBACK_COST_BASIS": "retail",
            "SUBCONTRACTED_RULE_ENABLED": "maybe",
        }
    )
    assert cfg.statutory_tax_rate == DEFAULT_CONFIG.statutory_tax_rate
    assert cfg.standard_brackets == DEFAULT_CONFIG.standard_brackets
    assert cfg.fallback_cost_basis == "base"
    assert cfg.subcontracted_rule_enabled is True


def test_cli_arguments_override_environment(tmp_path: Path) -> None:
    args = argparse.Namespace(
        input=str(tmp_path / "cli.json"),
        output_dir=str(tmp_path / "cli_out"),
        policy=None,
        sold_only=True,
        branch="Everett",
        verbose=True,
    )
    env = {"ESTIMATES_JSON": str(tmp_path / "env.json"), "BRANCH_FILTER": "Kent"}
    cfg = load_config(env, args)
    assert cfg.input_path == (tmp_path / "cli.json").resolve()
    assert cfg.output_dir == (tmp_path / "cli_out").resolve()
    assert cfg.sold_only is True
    assert cfg.branch_filter == "Everett"
    assert cfg.verbose is True
