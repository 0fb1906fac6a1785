"""Decide whether a repository's recorded signer identity is stale."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from ..crypto.keyloader import SigningKey
from .model import PUBLIC_KEY, PUBLIC_KEY_SIZE, SIGNATURE_BY, RepoTrustMetadata


@dataclass(frozen=True)
class Decision:
    rewrite: Optional[RepoTrustMetadata] = None
    drift: List[str] = field(default_factory=list)

    @property
    def no_change(self) -> bool:
        return self.rewrite is None


NO_CHANGE = Decision()


def reconcile(current: Optional[Mapping[str, Any]], key: SigningKey, signer_name: str) -> Decision:
    current = current or {}
    drift: List[str] = []

    stored_key = current.get(PUBLIC_KEY)
    if not isinstance(stored_key, (bytes, bytearray)) or bytes(stored_key) != key.public_key_pem:
        drift.append(PUBLIC_KEY)

    stored_size = current.get(PUBLIC_KEY_SIZE)
    if isinstance(stored_size, bool) or stored_size != key.public_key_size:
        drift.append(PUBLIC_KEY_SIZE)

    stored_by = current.get(SIGNATURE_BY)
    if not isinstance(stored_by, str) or stored_by != signer_name:
        drift.append(SIGNATURE_BY)

    if not drift:
        return NO_CHANGE
    meta = RepoTrustMetadata(
        public_key=key.public_key_pem,
        public_key_size=key.public_key_size,
        signature_by=signer_name,
    )
    return Decision(rewrite=meta, drift=drift)


__all__ = ["Decision", "NO_CHANGE", "reconcile"]
