"""Domain enumerations for the escrow core.

These enums define the canonical states, outcomes and codes used throughout
the package. They are framework-agnostic (no pydantic, no statemachine imports).
"""

import enum


class DealStatus(enum.StrEnum):
    """Lifecycle states of an escrow deal.

    State transitions are enforced by the DealStateMachine guard.
    See domain/state_machine.py for the transition table.
    """

    INIT = "INIT"
    FUNDED = "FUNDED"
    DELIVERED = "DELIVERED"
    DISPUTED = "DISPUTED"
    RESOLVED = "RESOLVED"
    RELEASED = "RELEASED"
    REFUNDED = "REFUNDED"

    @property
    def is_terminal(self) -> bool:
        return self in (DealStatus.RELEASED, DealStatus.REFUNDED)


class ErrorCode(enum.StrEnum):
    """Stable error codes carried by every failed Result.

    API and UI layers map these to user-facing messages and status codes,
    so values must never change once published.
    """

    DEAL_INVALID = "DEAL_INVALID"
    TRANSITION_BLOCKED = "TRANSITION_BLOCKED"
    TIME_WINDOW = "TIME_WINDOW"
    EVIDENCE_POLICY = "EVIDENCE_POLICY"
    TICKET_INVALID = "TICKET_INVALID"
    UNSUPPORTED_ACTION = "UNSUPPORTED_ACTION"
    PAYOUT_INVALID = "PAYOUT_INVALID"
    CLAIM_INVALID = "CLAIM_INVALID"


class Currency(enum.StrEnum):
    """Currencies the payout math understands. Amounts are always smallest units."""

    USD = "USD"  # cents
    USDC = "USDC"  # 6 decimal places
    SOL = "SOL"  # lamports


class ResolutionKind(enum.StrEnum):
    """How escrowed funds leave the contract."""

    RELEASE_TO_SELLER = "release_to_seller"
    REFUND_TO_BUYER = "refund_to_buyer"
    SPLIT = "split"


class TicketDecision(enum.StrEnum):
    """Verdicts an external arbiter may sign."""

    RELEASE = "release"
    REFUND = "refund"
    SPLIT = "split"


class CidKind(enum.StrEnum):
    """Immutable content anchor formats accepted as evidence references."""

    CID_V0 = "cid_v0"
    CID_V1 = "cid_v1"
    ARWEAVE = "arweave"


class ReputationTier(enum.StrEnum):
    NEW = "NEW"
    ESTABLISHED = "ESTABLISHED"
    TRUSTED = "TRUSTED"
    ELITE = "ELITE"


class RiskLevel(enum.StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DealCategory(enum.StrEnum):
    DIGITAL = "digital"
    PHYSICAL = "physical"
    SERVICE = "service"


class DisputeReason(enum.StrEnum):
    NON_DELIVERY = "NON_DELIVERY"
    NOT_AS_DESCRIBED = "NOT_AS_DESCRIBED"
    DAMAGED_GOODS = "DAMAGED_GOODS"
    SERVICE_INCOMPLETE = "SERVICE_INCOMPLETE"


class PreliminaryOutcome(enum.StrEnum):
    """Result of the automatic first pass over a pair of dispute claims."""

    BUYER_WINS = "BUYER_WINS"
    SELLER_WINS = "SELLER_WINS"
    SPLIT_50_50 = "SPLIT_50_50"
    ESCALATE_TO_JURY = "ESCALATE_TO_JURY"


class MilestoneStatus(enum.StrEnum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class OfferState(enum.StrEnum):
    """Where a price offer stands in a negotiation.

    OPEN and EXPIRED are derived from the clock; the others are set by the
    parties and are final.
    """

    OPEN = "OPEN"
    COUNTERED = "COUNTERED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"
