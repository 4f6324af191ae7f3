"""
Grant Ledger Settings

Loads ledger policy and report configuration from ``grant_ledger.yaml``.
"""

import logging
import os
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

OVER_COMMITMENT_POLICIES = ("allow", "reject")


class GrantLedgerSettings:
    """Ledger configuration with built-in defaults."""

    def __init__(self, config_dir: Path | str | None = None):
        """Initialize settings.

        Args:
            config_dir: Path to configuration directory (defaults to
                ``GRANT_LEDGER_CONFIG_DIR`` or the repository ``config`` dir)
        """
        if config_dir is None:
            config_dir = os.getenv("GRANT_LEDGER_CONFIG_DIR")
        self.config_dir = Path(config_dir) if config_dir else Path(__file__).parent.parent.parent / "config"
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from YAML."""
        config_file = self.config_dir / "grant_ledger.yaml"

        if config_file.exists():
            with open(config_file) as f:
                loaded = yaml.safe_load(f) or {}
            if not isinstance(loaded, dict):
                logger.warning(f"{config_file} does not contain a mapping; using defaults")
                loaded = {}
            self.config = loaded
        else:
            logger.warning(f"Config file not found: {config_file}; using defaults")
            self.config = self._default_config()

        defaults = self._default_config()
        disbursements = self._section("disbursements", defaults)
        policy = str(disbursements.get("over_commitment_policy", "allow")).lower()
        if policy not in OVER_COMMITMENT_POLICIES:
            logger.warning(f"Unknown over_commitment_policy {policy!r}; falling back to 'allow'")
            policy = "allow"
        self.over_commitment_policy = policy

        eligibility = self._section("eligibility", defaults)
        self.risk_keywords = [
            str(keyword).lower() for keyword in eligibility.get("risk_keywords", [])
        ]

        reports = self._section("reports", defaults)
        self.under_utilisation_ratio = Decimal(str(reports.get("under_utilisation_ratio", 0.5)))
        self.over_utilisation_ratio = Decimal(str(reports.get("over_utilisation_ratio", 1.0)))
        self.certificate_prefix = reports.get("certificate_prefix", "GUC")

        self.exports = self._section("exports", defaults)

    def _section(self, name: str, defaults: dict) -> dict:
        section = self.config.get(name)
        if isinstance(section, dict):
            return {**defaults.get(name, {}), **section}
        return dict(defaults.get(name, {}))

    @property
    def export_output_dir(self) -> Path:
        output_dir = Path(self.exports.get("output_dir", "output/grant_reports"))
        if not output_dir.is_absolute():
            output_dir = self.config_dir.parent / output_dir
        return output_dir

    def _default_config(self) -> dict[str, Any]:
        """Get default configuration."""
        return {
            "disbursements": {"over_commitment_policy": "allow"},
            "eligibility": {
                "risk_keywords": [
                    "ineligible",
                    "non-compliant",
                    "non_compliant",
                    "non compliant",
                    "noncompliant",
                    "disallowed",
                ],
            },
            "reports": {
                "under_utilisation_ratio": 0.5,
                "over_utilisation_ratio": 1.0,
                "certificate_prefix": "GUC",
            },
            "exports": {
                "output_dir": "output/grant_reports",
                "excel": {
                    "font": "Arial",
                    "header_fill": "1F4E78",
                    "section_fill": "D9E1F2",
                    "currency_format": "#,##0.00",
                },
            },
        }
