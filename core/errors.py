"""Error taxonomy for the contract intelligence core.

Pure functions (scoring, negotiation derivation, email composition) never raise
these for well-typed input. Only the lifecycle controller and the deal
conversion mapper do.
"""

from typing import Any


class ContractCoreError(Exception):
    """Base class for all errors surfaced by the contract core."""

    code: str = "CONTRACT_ERROR"
    status_code: int = 400

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(ContractCoreError):
    """Malformed input shape, rejected before any scoring runs."""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFound(ContractCoreError):
    """Referenced contract, analysis or negotiation round is absent."""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, resource: str, resource_id: str) -> None:
        super().__init__(
            f"{resource} not found: {resource_id}",
            {"resource": resource, "id": resource_id},
        )


class AnalysisInProgress(ContractCoreError):
    """An analysis is already running for this contract."""

    code = "ANALYSIS_IN_PROGRESS"
    status_code = 409

    def __init__(self, contract_id: str) -> None:
        super().__init__(
            f"Analysis already in progress for contract {contract_id}",
            {"contract_id": contract_id},
        )


class ExtractionFailure(ContractCoreError):
    """The extraction collaborator failed, timed out or returned unparsable data."""

    code = "EXTRACTION_FAILURE"
    status_code = 502


class InvalidTransition(ContractCoreError):
    """A contract status change that the lifecycle does not allow."""

    code = "INVALID_TRANSITION"
    status_code = 409

    def __init__(self, contract_id: str, from_status: str, to_status: str) -> None:
        super().__init__(
            f"Contract {contract_id} cannot move from '{from_status}' to '{to_status}'",
            {"contract_id": contract_id, "from_status": from_status, "to_status": to_status},
        )


class ConversionBlocked(ContractCoreError):
    """Critical information is missing and no override supplies it."""

    code = "CONVERSION_BLOCKED"
    status_code = 422

    def __init__(self, contract_id: str, blocking: list[dict[str, str]]) -> None:
        fields = ", ".join(b["field"] for b in blocking)
        super().__init__(
            f"Contract {contract_id} cannot be converted to a deal; missing critical fields: {fields}",
            {"contract_id": contract_id, "blocking": blocking},
        )
        self.blocking = blocking
