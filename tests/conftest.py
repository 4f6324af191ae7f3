"""
Pytest configuration and fixtures for grant ledger tests.
"""

import copy
from datetime import datetime, timezone
from pathlib import Path

import pytest
import yaml

from incubator_finance.grants.milestones import InMemoryMilestoneDirectory
from incubator_finance.grants.service import GrantLedgerService
from incubator_finance.grants.settings import GrantLedgerSettings
from incubator_finance.grants.store import InMemoryCatalogStore

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent

FIXED_NOW = datetime(2024, 2, 15, 10, 0, 0, tzinfo=timezone.utc)

STARTUP_ID = "startup-1"
GRANT_ID = "grant-1"

SAMPLE_CATALOG_PAYLOAD = {
    "version": 1,
    "updatedAt": "2024-01-15T00:00:00.000Z",
    "grants": [
        {
            "id": GRANT_ID,
            "name": "Seed Support Grant",
            "fundingAgency": "Department of Science and Technology",
            "program": "Seed Support Programme",
            "sanctionNumber": "SSP/2023/042",
            "sanctionDate": "2023-12-01",
            "totalSanctionedAmount": 100000,
            "currency": "INR",
            "managingDepartment": "Incubation Office",
            "disbursements": [
                {
                    "id": "disb-1",
                    "amount": 60000,
                    "date": "2024-01-10T00:00:00.000Z",
                    "status": "released",
                    "requestedAt": "2024-01-02T00:00:00.000Z",
                    "releasedAt": "2024-01-10T00:00:00.000Z",
                    "tranche": "Tranche 1",
                },
            ],
            "expenditures": [
                {
                    "id": "exp-1",
                    "amount": 20000,
                    "date": "2024-01-15T00:00:00.000Z",
                    "category": "Equipment",
                    "description": "Prototype test bench",
                    "supportingDocs": ["https://files.example.com/invoices/inv-1.pdf"],
                },
            ],
            "compliance": [],
        },
    ],
}


def fixed_clock() -> datetime:
    return FIXED_NOW


def write_ledger_config(config_dir: Path, **overrides) -> Path:
    """Write a grant_ledger.yaml with optional section overrides."""
    config_dir.mkdir(parents=True, exist_ok=True)
    config = {
        "disbursements": {"over_commitment_policy": "allow"},
        "eligibility": {"risk_keywords": ["ineligible", "non-compliant", "noncompliant", "disallowed"]},
        "reports": {
            "under_utilisation_ratio": 0.5,
            "over_utilisation_ratio": 1.0,
            "certificate_prefix": "GUC",
        },
        "exports": {"output_dir": "output/grant_reports"},
    }
    for section, values in overrides.items():
        config[section] = {**config.get(section, {}), **values}

    config_file = config_dir / "grant_ledger.yaml"
    with open(config_file, "w") as f:
        yaml.safe_dump(config, f)
    return config_file


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def clock():
    """Clock frozen at 2024-02-15T10:00:00Z."""
    return fixed_clock


@pytest.fixture
def sample_payload() -> dict:
    """100,000 INR grant with a 60,000 release and a 20,000 Equipment spend."""
    return copy.deepcopy(SAMPLE_CATALOG_PAYLOAD)


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    config_dir = tmp_path / "config"
    write_ledger_config(config_dir)
    return config_dir


@pytest.fixture
def settings(config_dir: Path) -> GrantLedgerSettings:
    return GrantLedgerSettings(config_dir)


@pytest.fixture
def settings_factory(tmp_path: Path):
    """Build settings from a config written with section overrides."""
    def factory(**overrides) -> GrantLedgerSettings:
        config_dir = tmp_path / "custom_config"
        write_ledger_config(config_dir, **overrides)
        return GrantLedgerSettings(config_dir)
    return factory


@pytest.fixture
def reject_settings(tmp_path: Path) -> GrantLedgerSettings:
    """Settings with the over-commitment policy set to reject."""
    config_dir = tmp_path / "reject_config"
    write_ledger_config(config_dir, disbursements={"over_commitment_policy": "reject"})
    return GrantLedgerSettings(config_dir)


@pytest.fixture
def store(sample_payload: dict, clock) -> InMemoryCatalogStore:
    store = InMemoryCatalogStore(clock=clock)
    store.put_payload(STARTUP_ID, sample_payload)
    return store


@pytest.fixture
def milestones() -> InMemoryMilestoneDirectory:
    return InMemoryMilestoneDirectory({STARTUP_ID: ["milestone-1"]})


@pytest.fixture
def service(store, milestones, settings, clock) -> GrantLedgerService:
    return GrantLedgerService(store=store, milestones=milestones, settings=settings, clock=clock)


# Environment setup for tests
@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """Set up test environment variables."""
    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.delenv("GRANT_LEDGER_CONFIG_DIR", raising=False)
    yield
