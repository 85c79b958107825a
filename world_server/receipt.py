"""Hashing and serialization for world snapshots and turn receipts.

A turn receipt is written as a flat JSON record: enums become their
values, the event list is reduced to a count and a digest, and the record
carries a ``receipt_hash`` over everything else so a replayed game can be
compared line by line.
"""

import hashlib
import json
from typing import Any, Dict, List

from world_server.schemas import TurnReceipt, WorldState


def canonical_json(obj: Any) -> bytes:
    """Sorted-key, compact JSON as UTF-8 bytes; unknown values fall back to ``str()``."""
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    ).encode("utf-8")


def _digest(obj: Any) -> str:
    return hashlib.sha256(canonical_json(obj)).hexdigest()


def compute_state_hash(state: WorldState) -> str:
    """SHA-256 of the serialized world, event history included."""
    return _digest(state.to_dict())


def events_digest(events: List[Dict[str, Any]]) -> str:
    return _digest(events)


def receipt_record(receipt: TurnReceipt) -> Dict[str, Any]:
    """Flatten a receipt into a hashed JSONL record."""
    record: Dict[str, Any] = {
        "turn": receipt.turn,
        "seed": receipt.seed,
        "state_hash_before": receipt.state_hash_before,
        "state_hash_after": receipt.state_hash_after,
        "admitted": list(receipt.admitted_proposals),
        "rejected": list(receipt.rejected_proposals),
        "event_count": len(receipt.events),
        "events_digest": events_digest(receipt.events),
        "detection_outcome": receipt.detection_outcome.value,
        "game_over": receipt.game_over,
        "winner": receipt.winner.value if receipt.winner else None,
        "metrics": dict(receipt.metrics),
    }
    record["receipt_hash"] = compute_receipt_hash(record)
    return record


def compute_receipt_hash(record: Dict[str, Any]) -> str:
    """SHA-256 of a receipt record, ignoring any ``receipt_hash`` already on it."""
    return _digest({k: v for k, v in record.items() if k != "receipt_hash"})


def verify_receipt_record(record: Dict[str, Any]) -> bool:
    return record.get("receipt_hash") == compute_receipt_hash(record)
