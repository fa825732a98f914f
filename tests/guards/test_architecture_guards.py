from __future__ import annotations

import re
from pathlib import Path

SRC_ROOT = Path(__file__).resolve().parents[2] / "src"

# The engine stays importable without a web framework.
PURE_MODULES = (
    "apps/core/contracts/policy.py",
    "apps/core/contracts/errors.py",
    "apps/core/services/access_checker.py",
    "apps/core/services/field_catalog.py",
    "apps/core/services/field_redactor.py",
    "apps/core/services/filters.py",
    "apps/core/services/permission_registry.py",
    "apps/core/services/policy_context.py",
    "apps/core/services/policy_engine.py",
    "apps/core/services/query_scoper.py",
    "apps/core/services/time_windows.py",
)

FORBIDDEN_IMPORTS = re.compile(r"^\s*(from|import)\s+(django|rest_framework)\b", re.MULTILINE)
RAW_ROLE_COMPARISON = re.compile(r"""==\s*["'](admin|coordinator|leader|staff|supplier|coordinador|l[ií]der)["']""", re.IGNORECASE)


def test_policy_engine_has_no_framework_imports() -> None:
    violations: list[str] = []
    for relative in PURE_MODULES:
        text = (SRC_ROOT / relative).read_text(encoding="utf-8")
        if FORBIDDEN_IMPORTS.search(text):
            violations.append(relative)

    assert not violations, "\n".join(violations)


def test_roles_are_never_compared_as_raw_strings() -> None:
    violations: list[str] = []
    for file_path in (SRC_ROOT / "apps").rglob("*.py"):
        text = file_path.read_text(encoding="utf-8")
        for match in RAW_ROLE_COMPARISON.finditer(text):
            violations.append(f"{file_path}: {match.group(0)}")

    assert not violations, "\n".join(violations)
