"""Detached signatures for package files.

Each package gets ``<pkg>.sig`` holding the raw RSA signature. Existing
signatures are left alone unless ``force`` is set, so an interrupted run can
simply be repeated. The loop stops at the first failure.
"""
from __future__ import annotations

import os
import tempfile
from enum import Enum
from typing import Iterable, List, Tuple

from .config import Settings, load_settings
from .crypto.keyloader import load_key
from .crypto.sign import sign_file
from .errors import SignatureWriteError
from .utils.logging import get_logger

SIG_SUFFIX = ".sig"


class SignOutcome(str, Enum):
    SIGNED = "signed"
    SKIPPED = "skipped"


def sigfile_for(binpkg: str) -> str:
    return f"{binpkg}{SIG_SUFFIX}"


def _write_signature(sigfile: str, data: bytes) -> None:
    # temp file + rename: a failed write never leaves a partial .sig behind
    try:
        fd, tmp = tempfile.mkstemp(prefix=f".{os.path.basename(sigfile)}.", dir=os.path.dirname(sigfile) or ".")
    except OSError as e:
        raise SignatureWriteError(f"failed to create {sigfile}: {e.strerror or e}") from e
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp, 0o644)
        os.replace(tmp, sigfile)
    except OSError as e:
        try:
            os.unlink(tmp)
        except FileNotFoundError:
            pass
        raise SignatureWriteError(f"failed to write {sigfile}: {e.strerror or e}") from e


def sign_pkg(binpkg: str, privkey: str | None = None, force: bool = False, settings: Settings | None = None) -> SignOutcome:
    settings = settings or load_settings()
    log = get_logger(settings.verbose)
    sigfile = sigfile_for(binpkg)
    if not force and os.access(sigfile, os.R_OK):
        if settings.verbose:
            log.info("skipping %s, file signature found.", binpkg)
        return SignOutcome.SKIPPED

    with load_key(privkey, settings) as key:
        sig = sign_file(key, binpkg)
    _write_signature(sigfile, sig.data)
    print(f"signed successfully {binpkg}")
    return SignOutcome.SIGNED


def sign_pkgs(binpkgs: Iterable[str], privkey: str | None = None, force: bool = False, settings: Settings | None = None) -> List[Tuple[str, SignOutcome]]:
    settings = settings or load_settings()
    results: List[Tuple[str, SignOutcome]] = []
    for binpkg in binpkgs:
        results.append((binpkg, sign_pkg(binpkg, privkey, force, settings)))
    return results


__all__ = ["SIG_SUFFIX", "SignOutcome", "sigfile_for", "sign_pkg", "sign_pkgs"]
