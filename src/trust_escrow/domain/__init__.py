"""Domain layer: pure escrow business logic with no I/O."""

from trust_escrow.domain.deal import Deal, collect_deal_violations, validate_deal
from trust_escrow.domain.enums import (
    CidKind,
    Currency,
    DealStatus,
    ErrorCode,
    ResolutionKind,
    TicketDecision,
)
from trust_escrow.domain.exceptions import (
    ClaimInvalidError,
    DealInvalidError,
    EscrowError,
    EvidencePolicyError,
    PayoutInvalidError,
    TicketInvalidError,
    TimeWindowError,
    TransitionBlockedError,
    UnsupportedActionError,
)
from trust_escrow.domain.payouts import (
    DealFunding,
    DealResolution,
    FeeConfig,
    PayoutBreakdown,
    PayoutDistribution,
    Settlement,
    calculate_payouts,
    compute_payouts,
    settle_payouts,
)
from trust_escrow.domain.resolution import (
    ExecutionIntent,
    ResolveTicket,
    resolve_dispute,
    validate_ticket,
)
from trust_escrow.domain.result import Err, Ok, Result
from trust_escrow.domain.state_machine import (
    DealStateMachine,
    allowed_transitions,
    apply_status,
)
from trust_escrow.domain.types import Amount, DealId, UserId

__all__ = [
    "Amount",
    "CidKind",
    "ClaimInvalidError",
    "Currency",
    "Deal",
    "DealFunding",
    "DealId",
    "DealInvalidError",
    "DealResolution",
    "DealStateMachine",
    "DealStatus",
    "Err",
    "ErrorCode",
    "EscrowError",
    "EvidencePolicyError",
    "ExecutionIntent",
    "FeeConfig",
    "Ok",
    "PayoutBreakdown",
    "PayoutDistribution",
    "PayoutInvalidError",
    "ResolutionKind",
    "ResolveTicket",
    "Result",
    "Settlement",
    "TicketDecision",
    "TicketInvalidError",
    "TimeWindowError",
    "TransitionBlockedError",
    "UnsupportedActionError",
    "UserId",
    "allowed_transitions",
    "apply_status",
    "calculate_payouts",
    "collect_deal_violations",
    "compute_payouts",
    "resolve_dispute",
    "settle_payouts",
    "validate_deal",
    "validate_ticket",
]
