"""
Kernel Boundary Contract.

Tests that enforce the package layering:

1. inventory_kernel/** may NOT import inventory_services or
   inventory_config.  The kernel never depends upward.

2. inventory_kernel/domain/** is pure: no SQLAlchemy, no db/, services/
   or selectors/ imports outside TYPE_CHECKING blocks.

3. inventory_services/** talks to the ledger through StockLedgerPort only:
   no models/, db/, services/ or selectors/ imports from the kernel.

4. Only the movement writer issues INSERT ... ON CONFLICT upserts.

These tests read source code via AST -- they cannot break anything.
"""

import ast
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _python_files(package: str) -> list[Path]:
    return sorted((REPO_ROOT / package).rglob("*.py"))


def _is_type_checking_block(node: ast.AST) -> bool:
    return isinstance(node, ast.If) and (
        (isinstance(node.test, ast.Name) and node.test.id == "TYPE_CHECKING")
        or (isinstance(node.test, ast.Attribute) and node.test.attr == "TYPE_CHECKING")
    )


def _extract_imports(path: Path, include_type_checking: bool = True) -> list[tuple[int, str]]:
    """Extract (line_number, module_string) for all imports in a file."""
    tree = ast.parse(path.read_text(), filename=str(path))

    skipped: set[int] = set()
    if not include_type_checking:
        for node in ast.walk(tree):
            if _is_type_checking_block(node):
                for child in ast.walk(node):
                    skipped.add(id(child))

    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if id(node) in skipped:
            continue
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom) and node.module:
            results.append((node.lineno, node.module))
    return results


def _violations(package: str, forbidden: tuple[str, ...], include_type_checking=True) -> list[str]:
    found = []
    for path in _python_files(package):
        for lineno, module in _extract_imports(path, include_type_checking):
            for prefix in forbidden:
                if module == prefix or module.startswith(f"{prefix}."):
                    found.append(f"  {path.relative_to(REPO_ROOT)}:{lineno} imports '{module}'")
    return found


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestKernelNoUpwardDependencies:
    def test_kernel_does_not_import_outer_packages(self):
        violations = _violations(
            "inventory_kernel", ("inventory_services", "inventory_config")
        )
        assert not violations, (
            "Kernel boundary violation -- inventory_kernel/** must not import "
            "inventory_services or inventory_config:\n" + "\n".join(violations)
        )

    def test_config_does_not_import_services(self):
        violations = _violations("inventory_config", ("inventory_services",))
        assert not violations, "\n".join(violations)


class TestPureDomain:
    def test_domain_has_no_persistence_imports(self):
        violations = _violations(
            "inventory_kernel/domain",
            (
                "sqlalchemy",
                "inventory_kernel.db",
                "inventory_kernel.models",
                "inventory_kernel.services",
                "inventory_kernel.selectors",
            ),
            include_type_checking=False,
        )
        assert not violations, (
            "inventory_kernel/domain/** must stay free of I/O:\n" + "\n".join(violations)
        )


class TestServicesUsePort:
    def test_services_do_not_reach_into_persistence(self):
        violations = _violations(
            "inventory_services",
            (
                "sqlalchemy",
                "inventory_kernel.db",
                "inventory_kernel.models",
                "inventory_kernel.services",
                "inventory_kernel.selectors",
            ),
        )
        assert not violations, (
            "inventory_services/** must use StockLedgerPort:\n" + "\n".join(violations)
        )


class TestSingleWriter:
    def test_only_movement_writer_upserts_levels(self):
        writers = [
            path.relative_to(REPO_ROOT).as_posix()
            for package in ("inventory_kernel", "inventory_services", "inventory_config")
            for path in _python_files(package)
            if "on_conflict_do_update" in path.read_text()
        ]
        assert writers == ["inventory_kernel/services/movement_writer.py"]
