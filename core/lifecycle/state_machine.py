"""Contract lifecycle state machine.

    uploaded -> analyzing -> analyzed -> under_negotiation -> finalized -> signed | rejected
                    |
                    +-> upload_failed  (retry: upload_failed -> analyzing)

Re-analysis of an analyzed contract goes back through ``analyzing``.
``archived`` is a separate flag on the contract, not a status.
"""

from core.errors import InvalidTransition
from core.lifecycle.models import ContractStatus

S = ContractStatus

ALLOWED_TRANSITIONS: dict[ContractStatus, frozenset[ContractStatus]] = {
    S.UPLOADED: frozenset({S.ANALYZING}),
    S.ANALYZING: frozenset({S.ANALYZED, S.UPLOAD_FAILED}),
    S.UPLOAD_FAILED: frozenset({S.ANALYZING}),
    S.ANALYZED: frozenset({S.ANALYZING, S.UNDER_NEGOTIATION}),
    S.UNDER_NEGOTIATION: frozenset({S.FINALIZED}),
    S.FINALIZED: frozenset({S.SIGNED, S.REJECTED}),
    S.SIGNED: frozenset(),
    S.REJECTED: frozenset(),
}

TERMINAL_STATUSES = frozenset({S.SIGNED, S.REJECTED})

# Statuses from which an analysis may be requested
ANALYZABLE_STATUSES = frozenset(s for s, targets in ALLOWED_TRANSITIONS.items() if S.ANALYZING in targets)

# Statuses in which a new negotiation round may be opened
NEGOTIABLE_STATUSES = frozenset({S.ANALYZED, S.UNDER_NEGOTIATION})

# Statuses a user may set by hand
MANUAL_STATUSES = frozenset({S.SIGNED, S.REJECTED})


def can_transition(current: ContractStatus, target: ContractStatus) -> bool:
    """Check whether ``current -> target`` is a legal move."""
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def ensure_transition(contract_id: str, current: ContractStatus, target: ContractStatus) -> None:
    """Raise InvalidTransition unless ``current -> target`` is legal."""
    if not can_transition(current, target):
        raise InvalidTransition(contract_id, current.value, target.value)
