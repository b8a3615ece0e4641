"""
tally.db.overlay — staged writes over a base KV, committed all-or-nothing.

An `OverlayKV` is the store handle a single invocation runs against. Writes go
into an in-memory overlay (with explicit deletion markers); reads consult the
overlay first and then the base. Nothing reaches the base until `commit()`,
which applies every staged change through one `base.batch()`. `discard()`
drops the overlay.

    overlay = OverlayKV(base)
    try:
        run_command(overlay)
    except Exception:
        overlay.discard()
        raise
    overlay.commit()

Prefix iteration merges the overlay and the base so the caller sees exactly
the post-write view, in ascending byte order.
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Tuple

from .kv import KV, Batch


class _OverlayBatch(Batch):
    """Batch that writes straight into the overlay (already transactional)."""

    def __init__(self, overlay: "OverlayKV") -> None:
        self._overlay = overlay

    def __enter__(self) -> "_OverlayBatch":
        return self

    def put(self, key: bytes, value: bytes) -> None:
        self._overlay.put(key, value)

    def delete(self, key: bytes) -> None:
        self._overlay.delete(key)

    def commit(self) -> None:
        pass

    def rollback(self) -> None:
        pass

    def __exit__(self, exc_type, exc, tb) -> Optional[bool]:
        return None


class OverlayKV(KV):
    """
    Copy-on-write view over `base`.

    `staged` maps key → value, or key → None for a deletion marker.
    """

    def __init__(self, base: KV) -> None:
        self._base = base
        self._staged: Dict[bytes, Optional[bytes]] = {}

    # --- ReadOnlyKV ---

    def get(self, key: bytes) -> Optional[bytes]:
        key = bytes(key)
        if key in self._staged:
            return self._staged[key]
        return self._base.get(key)

    def has(self, key: bytes) -> bool:
        key = bytes(key)
        if key in self._staged:
            return self._staged[key] is not None
        return self._base.has(key)

    def iter_prefix(self, prefix: bytes) -> Iterator[Tuple[bytes, bytes]]:
        prefix = bytes(prefix)
        merged: Dict[bytes, Optional[bytes]] = dict(self._base.iter_prefix(prefix))
        for k, v in self._staged.items():
            if k.startswith(prefix):
                merged[k] = v
        for k in sorted(merged):
            v = merged[k]
            if v is not None:
                yield k, v

    def close(self) -> None:
        pass

    # --- KV ---

    def put(self, key: bytes, value: bytes) -> None:
        self._staged[bytes(key)] = bytes(value)

    def delete(self, key: bytes) -> None:
        self._staged[bytes(key)] = None

    def batch(self) -> Batch:
        return _OverlayBatch(self)

    # --- transaction boundary ---

    @property
    def dirty(self) -> bool:
        return bool(self._staged)

    def changes(self) -> List[Tuple[bytes, Optional[bytes]]]:
        """Staged changes in key order; None marks a deletion."""
        return sorted(self._staged.items())

    def commit(self) -> int:
        """Apply staged changes to the base atomically. Returns the change count."""
        changes = self.changes()
        if changes:
            with self._base.batch() as b:
                for k, v in changes:
                    if v is None:
                        b.delete(k)
                    else:
                        b.put(k, v)
        self._staged.clear()
        return len(changes)

    def discard(self) -> None:
        self._staged.clear()


__all__ = ["OverlayKV"]
