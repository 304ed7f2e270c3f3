"""
Firestore helpers shared by services: transactions, chunked batch writes and
timestamp coercion.
"""
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Iterator, Sequence, TypeVar

from google.cloud import firestore as gcf

from khidmaty.config import db

T = TypeVar("T")


def run_transaction(callback: Callable[[Any], T]) -> T:
    """
    Runs `callback(transaction)` inside a Firestore transaction (retried by the
    SDK on contention). Reads inside the callback must use
    `ref.get(transaction=transaction)`.
    """
    @gcf.transactional
    def _run(transaction):
        return callback(transaction)

    return _run(db.transaction())


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    n = max(1, int(size))
    for i in range(0, len(items), n):
        yield items[i:i + n]


def delete_refs(refs: Iterable[Any], batch_size: int) -> int:
    """Deletes document references in write batches of at most `batch_size`."""
    refs = list(refs)
    for part in chunked(refs, batch_size):
        batch = db.batch()
        for ref in part:
            batch.delete(ref)
        batch.commit()
    return len(refs)


def update_refs(refs: Iterable[Any], patch: dict, batch_size: int) -> int:
    refs = list(refs)
    for part in chunked(refs, batch_size):
        batch = db.batch()
        for ref in part:
            batch.update(ref, patch)
        batch.commit()
    return len(refs)


def to_millis(value: Any) -> int:
    """Firestore Timestamp / datetime / epoch-ms number to epoch milliseconds (0 if unknown)."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    if isinstance(value, dict) and isinstance(value.get("_seconds"), (int, float)):
        return int(value["_seconds"] * 1000 + int(value.get("_nanoseconds") or 0) // 1_000_000)
    return 0


def to_iso(value: Any):
    ms = to_millis(value)
    if not ms:
        return None
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
