#!/usr/bin/env python3
"""Run every formatter, linter and the test suite in one go.

Steps, in order:
1. Black format check
2. isort import order check
3. Ruff static checks
4. Pylint analysis of the packages
5. pytest

Pass step names (e.g. `ruff pytest`) to run only those steps.
"""

from pathlib import Path
import subprocess
import sys

ROOT = Path(__file__).parent
PACKAGES = ["app", "core", "infrastructure"]

STEPS: dict[str, tuple[list[str], str]] = {
    "black": ([sys.executable, "-m", "black", ".", "--check"], "Black format check"),
    "isort": ([sys.executable, "-m", "isort", ".", "--check-only"], "isort import order"),
    "ruff": ([sys.executable, "-m", "ruff", "check", "."], "Ruff static checks"),
    "pylint": ([sys.executable, "-m", "pylint", *PACKAGES], "Pylint analysis"),
    "pytest": ([sys.executable, "-m", "pytest", "-q", "tests"], "pytest suite"),
}


def run_command(cmd: list[str], description: str) -> tuple[bool, str]:
    """Run `cmd` from the repo root; return (success, combined output)."""
    print(f"\n{'='*60}")
    print(f"Running: {description}")
    print(f"Command: {' '.join(cmd)}")
    print("=" * 60)

    try:
        result = subprocess.run(cmd, capture_output=True, text=True, check=False, cwd=ROOT)
    except OSError as e:
        print(f"❌ Could not start: {e}")
        return False, str(e)

    success = result.returncode == 0
    output = result.stdout + result.stderr
    print("✅ Passed" if success else "❌ Failed")
    if output.strip():
        print("\nOutput:")
        print(output)
    else:
        print("(no output)")
    return success, output


def main(argv: list[str]) -> int:
    selected = argv or list(STEPS)
    unknown = [name for name in selected if name not in STEPS]
    if unknown:
        print(f"Unknown steps: {', '.join(unknown)} (choose from {', '.join(STEPS)})")
        return 2

    results = []
    for name in selected:
        cmd, description = STEPS[name]
        success, output = run_command(cmd, description)
        results.append((description, success, output))

    print(f"\n{'='*60}")
    print("Summary")
    print("=" * 60)
    for description, success, _ in results:
        print(f"{description}: {'✅ passed' if success else '❌ failed'}")

    all_passed = all(success for _, success, _ in results)
    print(f"\nOverall: {'✅ all passed' if all_passed else '❌ failures'}")
    return 0 if all_passed else 1


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
