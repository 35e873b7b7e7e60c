"""Play the scripted battles in regression_suite.py from the command line.

    python tests/run_regression.py              # every scenario
    python tests/run_regression.py poison turn  # names containing either word
"""

from __future__ import annotations

import sys
from typing import List

from regression_suite import SCENARIOS, run_all


def main(argv: List[str]) -> int:
    chosen = [s for s in SCENARIOS if not argv or any(word in s.__name__ for word in argv)]
    if not chosen:
        print(f"no scenario matches {' '.join(argv)!r}")
        return 2

    results = run_all(chosen)
    width = max(len(name) for name, _, _ in results)
    for name, ok, reason in results:
        print(f"{name:<{width}}  {'ok' if ok else 'FAILED  ' + reason}")

    failures = sum(1 for _, ok, _ in results if not ok)
    print(f"\n{len(results) - failures} passed, {failures} failed")
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
