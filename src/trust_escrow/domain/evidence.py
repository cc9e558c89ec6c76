"""Evidence policy: anchor-format checks, reference merging, batch limits.

The core never fetches or pins evidence. It only checks the shape of the
immutable content anchors produced by the storage service:

    CIDv0    "Qm" + 44 base58 characters
    CIDv1    "b" + 58 lowercase base32 characters
    Arweave  43-character base64url transaction id

Batch checks accumulate every violation into a single EVIDENCE_POLICY error,
so an uploader sees all problems with a submission at once.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from trust_escrow.domain.enums import CidKind
from trust_escrow.domain.exceptions import EvidencePolicyError, TimeWindowError
from trust_escrow.domain.result import Err, Ok
from trust_escrow.domain.types import is_aware

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from trust_escrow.domain.result import Result

_CID_PATTERNS: dict[CidKind, re.Pattern[str]] = {
    CidKind.CID_V0: re.compile(r"Qm[1-9A-HJ-NP-Za-km-z]{44}"),
    CidKind.CID_V1: re.compile(r"b[a-z2-7]{58}"),
    CidKind.ARWEAVE: re.compile(r"[A-Za-z0-9_-]{43}"),
}

MB = 1024 * 1024
DEFAULT_MAX_ITEM_BYTES = 25 * MB
DEFAULT_MAX_TOTAL_BYTES = 100 * MB
DEFAULT_MAX_ITEMS = 10
CLOCK_SKEW = timedelta(minutes=5)

DEFAULT_ALLOWED_MIME_TYPES = frozenset(
    {
        "image/jpeg",
        "image/png",
        "application/pdf",
        "video/mp4",
        "text/plain",
    }
)


@dataclass(frozen=True, slots=True)
class EvidenceItem:
    """Metadata for one uploaded piece of evidence."""

    cid: str
    mime_type: str
    size_bytes: int
    uploaded_at: datetime
    sha256: str = ""


@dataclass(frozen=True, slots=True)
class EvidencePolicy:
    max_items: int = DEFAULT_MAX_ITEMS
    max_item_bytes: int = DEFAULT_MAX_ITEM_BYTES
    max_total_bytes: int = DEFAULT_MAX_TOTAL_BYTES
    allowed_mime_types: frozenset[str] = DEFAULT_ALLOWED_MIME_TYPES


# ---------------------------------------------------------------------------
# Anchors
# ---------------------------------------------------------------------------


def classify_cid(cid: object) -> CidKind | None:
    """Return the anchor format ``cid`` matches, or None."""
    if not isinstance(cid, str):
        return None
    for kind, pattern in _CID_PATTERNS.items():
        if pattern.fullmatch(cid):
            return kind
    return None


def validate_cid(cid: object) -> Result[CidKind]:
    kind = classify_cid(cid)
    if kind is None:
        return Err(EvidencePolicyError("Invalid content anchor", cid=str(cid)))
    return Ok(kind)


def _anchor_errors(cids: Iterable[object], seen: set[str]) -> list[str]:
    errors: list[str] = []
    for index, cid in enumerate(cids):
        if classify_cid(cid) is None:
            errors.append(f"Item {index}: invalid content anchor {cid!r}")
        elif cid in seen:
            errors.append(f"Item {index}: duplicate content anchor {cid}")
        else:
            seen.add(cid)
    return errors


def validate_evidence_cids(cids: Sequence[str]) -> Result[tuple[str, ...]]:
    """Check that every reference is a well-formed anchor and none repeats."""
    errors = _anchor_errors(cids, set())
    if errors:
        return Err(EvidencePolicyError("Evidence references rejected", errors=errors))
    return Ok(tuple(cids))


def merge_evidence_cids(
    existing: Sequence[str], incoming: Sequence[str]
) -> Result[tuple[str, ...]]:
    """Append new anchors to an existing list, keeping order and uniqueness.

    Incoming references already attached (or repeated within ``incoming``) are
    skipped. Any malformed incoming anchor rejects the whole merge.
    """
    errors = [
        f"Item {index}: invalid content anchor {cid!r}"
        for index, cid in enumerate(incoming)
        if classify_cid(cid) is None
    ]
    if errors:
        return Err(EvidencePolicyError("Evidence references rejected", errors=errors))

    merged = list(existing)
    seen = set(existing)
    for cid in incoming:
        if cid not in seen:
            seen.add(cid)
            merged.append(cid)
    return Ok(tuple(merged))


# ---------------------------------------------------------------------------
# Uploaded files
# ---------------------------------------------------------------------------


def validate_evidence_batch(
    items: Sequence[EvidenceItem],
    policy: EvidencePolicy,
    now: datetime,
) -> Result[tuple[EvidenceItem, ...]]:
    """Validate a batch of evidence metadata against the policy.

    Checks: non-empty batch, item count, anchors (format and uniqueness),
    MIME type, per-item size, total size, and upload timestamps no later than
    ``now`` plus five minutes of clock skew.

    A naive ``now`` fails with TIME_WINDOW; a naive upload timestamp is
    reported against its item.
    """
    if not is_aware(now):
        return Err(TimeWindowError("Current time must be a timezone-aware datetime"))
    if not items:
        return Err(EvidencePolicyError("Evidence batch cannot be empty", errors=[]))

    errors: list[str] = []
    if len(items) > policy.max_items:
        errors.append(f"Batch has {len(items)} items, limit is {policy.max_items}")

    errors.extend(_anchor_errors((item.cid for item in items), set()))

    for index, item in enumerate(items):
        if item.mime_type not in policy.allowed_mime_types:
            errors.append(f"Item {index} ({item.cid}): unsupported MIME type '{item.mime_type}'")
        if item.size_bytes <= 0:
            errors.append(f"Item {index} ({item.cid}): size must be positive")
        elif item.size_bytes > policy.max_item_bytes:
            limit = format_file_size(policy.max_item_bytes)
            errors.append(f"Item {index} ({item.cid}): exceeds max size of {limit}")
        if not is_aware(item.uploaded_at):
            errors.append(f"Item {index} ({item.cid}): timestamp must be timezone-aware")
        elif item.uploaded_at > now + CLOCK_SKEW:
            errors.append(f"Item {index} ({item.cid}): timestamp is in the future")

    total = sum(max(item.size_bytes, 0) for item in items)
    if total > policy.max_total_bytes:
        errors.append(
            f"Total evidence size {format_file_size(total)} exceeds "
            f"{format_file_size(policy.max_total_bytes)}"
        )

    if errors:
        return Err(EvidencePolicyError("Evidence batch rejected", errors=errors))
    return Ok(tuple(items))


def evidence_manifest(deal_id: str, items: Sequence[EvidenceItem]) -> str:
    """Deterministic manifest string, independent of upload order."""
    ordered = sorted(items, key=lambda item: (item.sha256, item.cid))
    manifest = {
        "dealId": deal_id,
        "totalItems": len(ordered),
        "items": [{"c": item.cid, "h": item.sha256, "s": item.size_bytes} for item in ordered],
    }
    return json.dumps(manifest, separators=(",", ":"), sort_keys=True)


def format_file_size(size_bytes: int) -> str:
    if size_bytes < 1024:
        return f"{size_bytes} B"
    if size_bytes < MB:
        return f"{size_bytes / 1024:.1f} KB"
    return f"{size_bytes / MB:.1f} MB"
