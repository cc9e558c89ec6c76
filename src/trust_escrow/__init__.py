"""trust-escrow-core: deal lifecycle, dispute policy and payout math for escrow deals."""

__version__ = "0.1.0"
