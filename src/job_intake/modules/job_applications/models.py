"""
Job Applications Models

In-memory data structures for the email verification step and the fixed
vocabularies of the application form (document slots, offices, positions).
Nothing here is persisted; entries live only as long as the process.
"""

import enum
from dataclasses import dataclass
from datetime import datetime


class VerificationState(str, enum.Enum):
    """
    Where an email address stands in the verification flow.

    UNVERIFIED and SUBMITTED have no stored entry; the other states are
    derived from a live VerificationEntry. See VALID_STATE_TRANSITIONS.
    """

    UNVERIFIED = "unverified"
    CODE_ISSUED = "code_issued"
    VERIFIED = "verified"
    EXPIRED = "expired"
    LOCKED = "locked"  # attempt cap reached
    SUBMITTED = "submitted"


class DocumentSlot(str, enum.Enum):
    """Named document categories an applicant may attach a file to."""

    RESUME = "resume"
    DEGREE = "degree"
    ID_PROOF = "idProof"
    EXPERIENCE = "experience"
    CERTIFICATION_1 = "certification1"
    CERTIFICATION_2 = "certification2"
    OTHER = "other"

    @property
    def required(self) -> bool:
        return self in REQUIRED_DOCUMENTS


REQUIRED_DOCUMENTS = (DocumentSlot.RESUME, DocumentSlot.DEGREE, DocumentSlot.ID_PROOF)

POSITIONS = [
    "Behavior Consultant (BC)",
    "Mobile Therapist (MT)",
    "Registered Behavior Technician (RBT)",
    "Behavior Technician (BT)",
    "Administration",
]


@dataclass
class VerificationEntry:
    """
    Verification state for one email address that is mid-flow.

    Attributes:
        email: Address being verified (case-sensitive key)
        code: 6-digit numeric one-time code
        issued_at: When the code was generated (UTC)
        expires_at: issued_at + expiry window (UTC)
        attempts: Failed verification attempts against this code
        verified: True once the correct code was submitted in time
    """

    email: str
    code: str
    issued_at: datetime
    expires_at: datetime
    attempts: int = 0
    verified: bool = False

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def state(self, now: datetime, max_attempts: int) -> VerificationState:
        """Derive the flow state of this entry at the given instant."""
        if self.is_expired(now):
            return VerificationState.EXPIRED
        if self.verified:
            return VerificationState.VERIFIED
        if self.attempts >= max_attempts:
            return VerificationState.LOCKED
        return VerificationState.CODE_ISSUED


# Allowed moves between verification states. Staying in the same state
# (re-issuing a code, repeating a correct code) is always allowed.
VALID_STATE_TRANSITIONS: dict[VerificationState, set[VerificationState]] = {
    VerificationState.UNVERIFIED: {
        VerificationState.CODE_ISSUED,
    },
    VerificationState.CODE_ISSUED: {
        VerificationState.VERIFIED,  # Correct code in time
        VerificationState.EXPIRED,  # Code timed out
        VerificationState.LOCKED,  # Attempt cap reached
    },
    VerificationState.VERIFIED: {
        VerificationState.SUBMITTED,  # Application forwarded to HR
        VerificationState.EXPIRED,  # Never submitted in time
        VerificationState.CODE_ISSUED,  # Fresh code requested
    },
    VerificationState.EXPIRED: {
        VerificationState.UNVERIFIED,  # Entry deleted
    },
    VerificationState.LOCKED: {
        VerificationState.UNVERIFIED,  # Entry deleted
        VerificationState.CODE_ISSUED,  # Fresh code requested
    },
    # Terminal - the entry is gone
    VerificationState.SUBMITTED: set(),
}


class InvalidStateTransitionError(ValueError):
    """Raised when a verification entry is moved against the state machine."""

    def __init__(self, current_state: VerificationState, new_state: VerificationState):
        self.current_state = current_state
        self.new_state = new_state
        valid_transitions = VALID_STATE_TRANSITIONS.get(current_state, set())
        super().__init__(
            f"Invalid state transition: {current_state.value} -> {new_state.value}. "
            f"Valid transitions: {sorted(s.value for s in valid_transitions)}"
        )


def check_transition(current_state: VerificationState, new_state: VerificationState) -> None:
    """
    Validate a move between verification states.

    Raises:
        InvalidStateTransitionError: If the move is not in VALID_STATE_TRANSITIONS
    """
    if new_state == current_state:
        return
    if new_state not in VALID_STATE_TRANSITIONS.get(current_state, set()):
        raise InvalidStateTransitionError(current_state, new_state)
