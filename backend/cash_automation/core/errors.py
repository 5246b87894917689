"""
Error taxonomy for the cash automation workflows.

ConfigurationMissing   - tenant has no schedule config (automation disabled)
PreconditionViolation  - open when already open / close when nothing is open;
                         logged as ``skipped`` and not retried this window
ExecutionFailure       - data store error while creating/closing/reporting;
                         logged as ``failed`` and retried on the next tick
AggregationFailure     - a report sub-fetch failed; aborts the close before
                         any register mutation
RegisterStateConflict  - the conditional close found the register already
                         closed by someone else
"""
from typing import Optional


class CashAutomationError(Exception):
    """Base class for every error raised by the automation workflows."""

    def __init__(self, message: str, tenant_id: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.tenant_id = tenant_id


class ConfigurationMissing(CashAutomationError):
    pass


class PreconditionViolation(CashAutomationError):
    pass


class ExecutionFailure(CashAutomationError):
    pass


class AggregationFailure(CashAutomationError):
    pass


class RegisterStateConflict(PreconditionViolation):
    """The register changed state between the read and the conditional update."""
