from __future__ import annotations

import argparse
import sys

from .config import COMPRESSIONS, load_settings
from .crypto.init import ensure_initialized
from .errors import RepoSignError
from .sign_pkgs import sign_pkgs
from .sign_repo import sign_repo
from .utils.logging import get_logger


def cmd_sign_repo(args: argparse.Namespace) -> int:
    settings = load_settings(args.config, verbose=args.verbose or None, compression=args.compression)
    result = sign_repo(args.repodir, args.signedby, privkey=args.privkey, settings=settings)
    if result.flushed:
        print(result.summary())
    return 0


def cmd_sign_pkg(args: argparse.Namespace) -> int:
    settings = load_settings(args.config, verbose=args.verbose or None)
    sign_pkgs(args.binpkgs, privkey=args.privkey, force=args.force, settings=settings)
    return 0


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser("reposign", description="Sign binary package repositories and packages")
    p.add_argument("-v", "--verbose", action="store_true")
    p.add_argument("--config", help="YAML settings file (default: $REPOSIGN_CONFIG or config/reposign.yml)")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_repo = sub.add_parser("sign-repo", help="record the signer's public key in the repository index")
    p_repo.add_argument("repodir")
    p_repo.add_argument("--signedby", help="signer identity, e.g. 'Name <mail>'")
    p_repo.add_argument("--privkey", help="PEM RSA private key (default: ~/.ssh/id_rsa)")
    p_repo.add_argument("--compression", choices=COMPRESSIONS)
    p_repo.set_defaults(func=cmd_sign_repo)

    p_pkg = sub.add_parser("sign-pkg", help="write detached <pkg>.sig signatures")
    p_pkg.add_argument("binpkgs", nargs="+", metavar="binpkg")
    p_pkg.add_argument("--privkey", help="PEM RSA private key (default: ~/.ssh/id_rsa)")
    p_pkg.add_argument("-f", "--force", action="store_true", help="overwrite existing signatures")
    p_pkg.set_defaults(func=cmd_sign_pkg)

    args = p.parse_args(argv)
    log = get_logger(args.verbose)
    try:
        ensure_initialized()
        return args.func(args)
    except (RepoSignError, ValueError) as e:
        log.debug("%s failed", args.cmd, exc_info=True)
        print(f"reposign: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
