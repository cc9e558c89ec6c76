"""Shared test fixtures for the escrow core test suite.

Provides:
    - Factory for valid deals in any status
    - Well-formed content anchors of each supported kind
    - Fixed reference times (no test reads the wall clock)
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import Any

import pytest

from trust_escrow.config import get_settings
from trust_escrow.domain.deal import Deal
from trust_escrow.domain.enums import DealStatus
from trust_escrow.domain.types import DealId, UserId

DEADLINE = datetime(2024, 1, 10, tzinfo=UTC)
ONE_DAY = 86_400
BEFORE_DEADLINE = DEADLINE - timedelta(days=1)

_BASE58 = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_BASE32 = "abcdefghijklmnopqrstuvwxyz234567"
_BASE64URL = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"


def _fill(alphabet: str, length: int, seed: int) -> str:
    return "".join(alphabet[(seed * 7 + i * 3) % len(alphabet)] for i in range(length))


def cid_v0(seed: int = 0) -> str:
    return "Qm" + _fill(_BASE58, 44, seed)


def cid_v1(seed: int = 0) -> str:
    return "b" + _fill(_BASE32, 58, seed)


def arweave_id(seed: int = 0) -> str:
    return _fill(_BASE64URL, 43, seed)


# ---------------------------------------------------------------------------
# Domain Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_deal() -> Callable[..., Deal]:
    """Return a factory for valid deals; keyword arguments override fields."""

    def _make(**overrides: Any) -> Deal:
        fields: dict[str, Any] = {
            "id": DealId("deal-001"),
            "seller": UserId("seller-001"),
            "buyer": UserId("buyer-001"),
            "price_usd": Decimal("100.00"),
            "delivery_deadline": DEADLINE,
            "dispute_window_secs": ONE_DAY,
            "status": DealStatus.FUNDED,
            "created_at": DEADLINE - timedelta(days=7),
        }
        fields.update(overrides)
        return Deal(**fields)

    return _make


class AnchorFactory:
    """Deterministic, well-formed anchors; different seeds give different ids."""

    v0 = staticmethod(cid_v0)
    v1 = staticmethod(cid_v1)
    arweave = staticmethod(arweave_id)


@pytest.fixture
def anchor() -> AnchorFactory:
    return AnchorFactory()


@pytest.fixture
def anchors() -> list[str]:
    """Three distinct valid anchors, one of each kind."""
    return [cid_v0(1), cid_v1(2), arweave_id(3)]


@pytest.fixture
def fresh_settings():
    """Clear the settings cache around a test so env overrides take effect."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
