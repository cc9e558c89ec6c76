"""Application layer."""

from trust_escrow.services.escrow_service import EscrowService, SettlementOutcome

__all__ = ["EscrowService", "SettlementOutcome"]
