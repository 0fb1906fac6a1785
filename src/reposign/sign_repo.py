"""Record the signer identity inside a repository's index metadata.

State machine::

    OPEN -> VALIDATE_NONEMPTY -> DERIVE_KEY -> RECONCILE -+-> DONE           (no change)
                                                          +-> LOCK -> FLUSH -> UNLOCK -> DONE

Any error jumps straight to DONE; the repository handle and key are released
on every path by their ``with`` scopes. Only FLUSH touches the disk, and only
while the repository lock is held.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List

from .config import Settings, load_settings
from .crypto.keyloader import load_key
from .errors import ConfigError, InvalidRepositoryError
from .repo import repodata
from .repo.lock import repo_lock
from .repo.reconcile import reconcile
from .utils.logging import get_logger


class RepoSignState(str, Enum):
    OPEN = "open"
    VALIDATE_NONEMPTY = "validate-nonempty"
    DERIVE_KEY = "derive-key"
    RECONCILE = "reconcile"
    LOCK = "lock"
    FLUSH = "flush"
    UNLOCK = "unlock"
    DONE = "done"


@dataclass
class RepoSignResult:
    repodir: str
    package_count: int
    flushed: bool
    drift: List[str] = field(default_factory=list)
    states: List[RepoSignState] = field(default_factory=list)

    def summary(self) -> str:
        n = self.package_count
        return f"Initialized signed repository ({n} package{'' if n == 1 else 's'})"


def sign_repo(
    repodir: str,
    signer_name: str | None,
    privkey: str | None = None,
    compression: str | None = None,
    settings: Settings | None = None,
    flush: Callable[..., str] = repodata.flush,
) -> RepoSignResult:
    if not signer_name:
        raise ConfigError("--signedby unset! cannot initialize signed repository")
    settings = settings or load_settings()
    compression = compression or settings.compression
    log = get_logger(settings.verbose)
    states: List[RepoSignState] = []

    def enter(state: RepoSignState) -> None:
        states.append(state)
        log.debug("sign-repo %s: %s", repodir, state.value)

    try:
        enter(RepoSignState.OPEN)
        with repodata.open_repo(repodir, settings.arch) as repo:
            enter(RepoSignState.VALIDATE_NONEMPTY)
            if repo.package_count == 0:
                raise InvalidRepositoryError(f"invalid repository {repodir}: index is empty")

            enter(RepoSignState.DERIVE_KEY)
            with load_key(privkey, settings) as key:
                enter(RepoSignState.RECONCILE)
                decision = reconcile(repo.meta, key, signer_name)

            result = RepoSignResult(repodir, repo.package_count, flushed=False, drift=decision.drift, states=states)
            if decision.no_change:
                log.info("repository %s already signed by %s", repodir, signer_name)
                return result

            log.info("repository %s signer identity changed: %s", repodir, ", ".join(decision.drift))
            enter(RepoSignState.LOCK)
            with repo_lock(repo.repodir, repo.arch, wait=settings.lock_wait):
                enter(RepoSignState.FLUSH)
                flush(repo.repodir, repo.arch, repo.index, decision.rewrite.to_meta(), compression)
                enter(RepoSignState.UNLOCK)
            result.flushed = True
            return result
    finally:
        enter(RepoSignState.DONE)


__all__ = ["RepoSignState", "RepoSignResult", "sign_repo"]
