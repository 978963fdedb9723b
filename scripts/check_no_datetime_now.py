#!/usr/bin/env python3
"""Pre-commit hook that keeps wall-clock reads behind the time authority.

Services take "now" from TimeAuthorityProtocol so session expiry, challenge
windows, claim leases and cleanup horizons can be driven by a fake clock in
tests. This script scans src/ for direct datetime.now() / datetime.utcnow()
calls and fails if any appear outside SystemTimeAuthority.

Usage:
    python scripts/check_no_datetime_now.py

Exit codes:
    0: No violations found
    1: Direct clock reads found
"""

import re
import sys
from pathlib import Path

DATETIME_NOW_PATTERN = re.compile(r"datetime\s*\.\s*(now|utcnow)\s*\(")

ALLOWED_FILES = {
    "src/infrastructure/adapters/time/system_time_authority.py",
}


def check_file(file_path: Path) -> list[tuple[int, str]]:
    """Return (line_number, line) for each direct clock read in a file."""
    try:
        content = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return []

    violations: list[tuple[int, str]] = []
    for line_num, line in enumerate(content.splitlines(), start=1):
        if line.lstrip().startswith("#"):
            continue
        if DATETIME_NOW_PATTERN.search(line):
            violations.append((line_num, line.strip()))
    return violations


def main() -> int:
    src_path = Path("src")
    if not src_path.exists():
        print("Warning: src/ directory not found, skipping check")
        return 0

    all_violations: dict[str, list[tuple[int, str]]] = {}
    for py_file in sorted(src_path.rglob("*.py")):
        relative_path = py_file.as_posix()
        if relative_path in ALLOWED_FILES:
            continue
        violations = check_file(py_file)
        if violations:
            all_violations[relative_path] = violations

    if not all_violations:
        print("No datetime.now() calls found in src/")
        return 0

    print("Direct datetime.now() calls detected:")
    print()
    for file_path, violations in all_violations.items():
        print(f"  {file_path}:")
        for line_num, line_content in violations:
            print(f"    Line {line_num}: {line_content}")
    print()
    print("Inject TimeAuthorityProtocol and call self._time.utcnow() instead.")
    return 1


if __name__ == "__main__":
    sys.exit(main())
