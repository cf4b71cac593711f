"""Patch Engine entrypoint (CLI selftest)."""

from __future__ import annotations

import sys

from .core.selftests import PatchEngineSelfTests

USAGE = "usage: patchengine --selftest"


def _run_selftests_cli() -> int:
    ok, report = PatchEngineSelfTests.run()
    print(report)
    return 0 if ok else 2


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv if argv is None else argv)
    if "--selftest" in argv:
        return _run_selftests_cli()
    print(USAGE, file=sys.stderr)
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
