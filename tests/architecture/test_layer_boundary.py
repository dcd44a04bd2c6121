"""
Layer boundary tests.

1. ledger_kernel/** may NOT import ledger_engines, ledger_services or
   ledger_config.  The kernel never depends upward.

2. ledger_engines/** may NOT import ledger_services, ledger_config or
   sqlalchemy.  Engines are pure.

3. Nothing outside ledger_kernel imports the ORM models directly.

These tests read source code via AST; they cannot break anything.
"""

import ast
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]


def _python_files(package: str) -> list[Path]:
    return sorted((ROOT / package).rglob("*.py"))


def _extract_imports(path: Path) -> list[tuple[int, str]]:
    tree = ast.parse(path.read_text(), filename=str(path))
    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom) and node.module:
            results.append((node.lineno, node.module))
    return results


def _violations(package: str, forbidden: tuple[str, ...]) -> list[str]:
    found: list[str] = []
    for path in _python_files(package):
        for lineno, module in _extract_imports(path):
            for prefix in forbidden:
                if module == prefix or module.startswith(f"{prefix}."):
                    found.append(f"  {path.relative_to(ROOT)}:{lineno} imports '{module}'")
    return found


class TestKernelNoUpwardDependencies:

    def test_kernel_does_not_import_upper_layers(self):
        violations = _violations(
            "ledger_kernel", ("ledger_engines", "ledger_services", "ledger_config")
        )
        assert not violations, "Kernel boundary violation:\n" + "\n".join(violations)


class TestEnginesArePure:

    def test_engines_do_not_import_services_or_persistence(self):
        violations = _violations(
            "ledger_engines",
            ("ledger_services", "ledger_config", "ledger_kernel.db", "ledger_kernel.models",
             "ledger_kernel.services", "sqlalchemy"),
        )
        assert not violations, "Engine purity violation:\n" + "\n".join(violations)


class TestModelsStayInKernel:

    def test_models_imported_only_by_kernel(self):
        violations = _violations("ledger_services", ("ledger_kernel.models",))
        violations += _violations("ledger_config", ("ledger_kernel.models",))
        assert not violations, "ORM models leaked:\n" + "\n".join(violations)
