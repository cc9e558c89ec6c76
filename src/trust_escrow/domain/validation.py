"""Field checks for deal-creation requests.

Each ``validate_*`` helper returns an error message or None, so callers can
collect problems per field. ``validate_deal_creation`` runs all of them and
returns one DEAL_INVALID carrying a field -> message map.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from trust_escrow.domain.exceptions import DealInvalidError
from trust_escrow.domain.result import Err, Ok, Result
from trust_escrow.domain.types import has_digits_below
from trust_escrow.logging_config import get_logger

logger = get_logger(__name__)

WALLET_MIN_LENGTH = 32
WALLET_MAX_LENGTH = 44
TX_SIGNATURE_LENGTH = 88
_BASE58 = re.compile(r"[1-9A-HJ-NP-Za-km-z]+")

USDC_DECIMALS = 6
MAX_USDC_AMOUNT = Decimal("1000000")

DESCRIPTION_MIN_LENGTH = 10
DESCRIPTION_MAX_LENGTH = 1000
DISPUTE_REASON_MIN_LENGTH = 20
DISPUTE_REASON_MAX_LENGTH = 500


@dataclass(frozen=True, slots=True)
class DealCreation:
    """A deal-creation request that passed every field check."""

    buyer_wallet: str
    seller_wallet: str
    amount: Decimal
    description: str

    @property
    def amount_units(self) -> int:
        """Amount in USDC base units (10**-6)."""
        return int(self.amount.scaleb(USDC_DECIMALS))


def validate_wallet_address(address: object) -> str | None:
    if not isinstance(address, str) or not address:
        return "Wallet address must be a non-empty string"
    if not WALLET_MIN_LENGTH <= len(address) <= WALLET_MAX_LENGTH:
        return "Invalid wallet address length"
    if not _BASE58.fullmatch(address):
        return "Wallet address contains invalid characters"
    return None


def validate_tx_signature(signature: object) -> str | None:
    if not isinstance(signature, str) or not signature:
        return "Signature must be a non-empty string"
    if len(signature) != TX_SIGNATURE_LENGTH:
        return "Invalid signature length"
    if not _BASE58.fullmatch(signature):
        return "Signature contains invalid characters"
    return None


def parse_usdc_amount(amount: object) -> Decimal | str:
    """Parse a USDC amount, returning the Decimal or an error message.

    Accepts Decimal, int or a numeric string. Floats are refused since the
    binary value is not the amount the user typed.
    """
    if isinstance(amount, bool) or not isinstance(amount, Decimal | int | str):
        return "Amount must be a Decimal, integer or numeric string"
    try:
        value = Decimal(amount.strip() if isinstance(amount, str) else amount)
    except InvalidOperation:
        return "Amount must be a valid number"
    if not value.is_finite():
        return "Amount must be a valid number"
    if value <= 0:
        return "Amount must be greater than 0"
    if value > MAX_USDC_AMOUNT:
        return "Amount exceeds maximum limit of 1,000,000 USDC"
    if has_digits_below(value, USDC_DECIMALS):
        return f"Amount cannot have more than {USDC_DECIMALS} decimal places"
    return value


def validate_usdc_amount(amount: object) -> str | None:
    parsed = parse_usdc_amount(amount)
    return parsed if isinstance(parsed, str) else None


def _check_text(text: object, label: str, min_length: int, max_length: int) -> str | None:
    if not isinstance(text, str) or not text:
        return f"{label} must be a non-empty string"
    trimmed = text.strip()
    if len(trimmed) < min_length:
        return f"{label} must be at least {min_length} characters"
    if len(trimmed) > max_length:
        return f"{label} cannot exceed {max_length} characters"
    return None


def validate_deal_description(description: object) -> str | None:
    return _check_text(description, "Description", DESCRIPTION_MIN_LENGTH, DESCRIPTION_MAX_LENGTH)


def validate_dispute_reason(reason: object) -> str | None:
    return _check_text(
        reason, "Dispute reason", DISPUTE_REASON_MIN_LENGTH, DISPUTE_REASON_MAX_LENGTH
    )


def validate_deal_creation(
    buyer_wallet: str,
    seller_wallet: str,
    amount: Decimal | int | str,
    description: str,
) -> Result[DealCreation]:
    """Check every field of a deal-creation request.

    Returns:
        Ok(DealCreation) with the parsed amount and trimmed description, or
        Err(DEAL_INVALID) whose ``details["errors"]`` maps each failing field
        (``buyerWallet``, ``sellerWallet``, ``wallets``, ``amount``,
        ``description``) to its message.
    """
    errors: dict[str, str] = {}

    buyer_error = validate_wallet_address(buyer_wallet)
    if buyer_error:
        errors["buyerWallet"] = buyer_error
    seller_error = validate_wallet_address(seller_wallet)
    if seller_error:
        errors["sellerWallet"] = seller_error
    if buyer_wallet == seller_wallet:
        errors["wallets"] = "Buyer and seller cannot be the same wallet"

    parsed_amount = parse_usdc_amount(amount)
    if isinstance(parsed_amount, str):
        errors["amount"] = parsed_amount

    description_error = validate_deal_description(description)
    if description_error:
        errors["description"] = description_error

    if errors:
        logger.info("deal.creation_rejected", fields=sorted(errors))
        return Err(DealInvalidError("Deal creation request rejected", errors=errors))
    return Ok(
        DealCreation(
            buyer_wallet=buyer_wallet,
            seller_wallet=seller_wallet,
            amount=parsed_amount,
            description=description.strip(),
        )
    )
