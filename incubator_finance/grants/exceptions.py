"""
Grant Ledger Exceptions

Error taxonomy raised by the ledger engine and mapped to HTTP status codes by
the API layer.
"""


class GrantLedgerError(Exception):
    """Base class for all ledger errors."""


# =============================================================================
# Validation errors
# =============================================================================

class LedgerValidationError(GrantLedgerError):
    """Input failed validation; nothing was written."""


class InvalidAmountError(LedgerValidationError):
    def __init__(self, amount):
        self.amount = amount
        super().__init__(f"Disbursement amount must be greater than zero (got {amount})")


class InvalidStatusError(LedgerValidationError):
    def __init__(self, status):
        self.status = status
        super().__init__(f"Invalid disbursement status: {status!r}")


class InvalidPeriodError(LedgerValidationError):
    """Reporting window is missing, unparsable or inverted."""


class OverCommitmentError(LedgerValidationError):
    def __init__(self, grant_id: str, requested, committed, sanctioned):
        self.grant_id = grant_id
        self.requested = requested
        self.committed = committed
        self.sanctioned = sanctioned
        super().__init__(
            f"Requesting {requested} on grant {grant_id} would commit "
            f"{committed + requested} against a sanction of {sanctioned}"
        )


class ExportPathError(LedgerValidationError):
    def __init__(self, file_name: str):
        self.file_name = file_name
        super().__init__(f"Export file name {file_name!r} resolves outside the export directory")


class CatalogPayloadError(LedgerValidationError):
    """A stored or submitted catalog payload is structurally unusable.

    Attributes:
        path: JSON-style path of the offending record (e.g. ``grants[2]``)
        reason: Human readable description
    """

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")

    def to_dict(self) -> dict:
        return {"path": self.path, "reason": self.reason}


# =============================================================================
# Not-found errors
# =============================================================================

class LedgerNotFoundError(GrantLedgerError):
    """A referenced entity does not exist."""


class GrantNotFoundError(LedgerNotFoundError):
    def __init__(self, grant_id: str):
        self.grant_id = grant_id
        super().__init__(f"Grant with id {grant_id} not found")


class DisbursementNotFoundError(LedgerNotFoundError):
    def __init__(self, grant_id: str, disbursement_id: str):
        self.grant_id = grant_id
        self.disbursement_id = disbursement_id
        super().__init__(f"Disbursement {disbursement_id} not found on grant {grant_id}")


class MilestoneNotFoundError(LedgerNotFoundError):
    def __init__(self, startup_id: str, milestone_id: str):
        self.startup_id = startup_id
        self.milestone_id = milestone_id
        super().__init__(f"Milestone {milestone_id} not found for startup {startup_id}")


class NoGrantsConfiguredError(LedgerNotFoundError):
    def __init__(self, startup_id: str):
        self.startup_id = startup_id
        super().__init__(f"No grants configured for startup {startup_id}")


# =============================================================================
# State errors
# =============================================================================

class LedgerStateError(GrantLedgerError):
    """The operation conflicts with the current stored state."""


class TerminalStateError(LedgerStateError):
    def __init__(self, disbursement_id: str, requested_status: str):
        self.disbursement_id = disbursement_id
        self.requested_status = requested_status
        super().__init__(
            f"Disbursement {disbursement_id} is released and cannot transition to {requested_status}"
        )


class ConcurrentModificationError(LedgerStateError):
    def __init__(self, startup_id: str, expected_version: int, actual_version: int):
        self.startup_id = startup_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Grant catalog for startup {startup_id} changed concurrently "
            f"(expected version {expected_version}, found {actual_version})"
        )
