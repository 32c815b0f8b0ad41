#!/usr/bin/env python3
"""
Validate that test_scenarios_business_summary.md stays in sync with test_integration_scenarios.py.

This script checks:
1. All test classes in the test file are documented
2. All test methods are referenced in the doc, under their own class
3. Warns about documented tests that no longer exist

Run: python scripts/validate_test_docs_sync.py
"""

import re
import sys
from dataclasses import dataclass, field
from pathlib import Path

CLASS_PATTERN = re.compile(r'\*\*Test Class\*\*:\s*`(Test\w+)`')
METHOD_PATTERN = re.compile(r'\*\*Test Method\*\*:\s*`(test_\w+)`')


@dataclass
class SyncReport:
    test_classes: dict[str, list[str]]
    doc_classes: dict[str, list[str]]
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def in_sync(self) -> bool:
        return not self.errors and not self.warnings


def extract_test_classes_and_methods(test_file: Path) -> dict[str, list[str]]:
    """Extract test class names and their test methods from the test file."""
    classes = {}
    current_class = None

    for line in test_file.read_text().split('\n'):
        class_match = re.match(r'^class (Test\w+)', line)
        if class_match:
            current_class = class_match.group(1)
            classes[current_class] = []
            continue

        if current_class:
            method_match = re.match(r'^\s+def (test_\w+)', line)
            if method_match:
                classes[current_class].append(method_match.group(1))

    return classes


def extract_documented_tests(doc_file: Path) -> dict[str, list[str]]:
    """
    Extract documented classes with the methods listed beneath each one.

    A **Test Method** marker belongs to the closest **Test Class** marker above it.
    Methods documented before any class are filed under an empty class name.
    """
    classes = {}
    current_class = ''

    for line in doc_file.read_text().split('\n'):
        class_match = CLASS_PATTERN.search(line)
        if class_match:
            current_class = class_match.group(1)
            classes.setdefault(current_class, [])
            continue

        method_match = METHOD_PATTERN.search(line)
        if method_match:
            classes.setdefault(current_class, []).append(method_match.group(1))

    return classes


def check_sync(test_file: Path, doc_file: Path) -> SyncReport:
    """Compare the integration tests against their business summary."""
    report = SyncReport(
        test_classes=extract_test_classes_and_methods(test_file),
        doc_classes=extract_documented_tests(doc_file),
    )

    documented_classes = {cls for cls in report.doc_classes if cls}
    for cls in sorted(set(report.test_classes) - documented_classes):
        report.errors.append(f"Missing class documentation: {cls}")
    for cls in sorted(documented_classes - set(report.test_classes)):
        report.warnings.append(f"Documented class no longer exists: {cls}")

    owner_in_tests = {m: cls for cls, methods in report.test_classes.items() for m in methods}
    owner_in_doc = {m: cls for cls, methods in report.doc_classes.items() for m in methods}

    for method in sorted(set(owner_in_tests) - set(owner_in_doc)):
        report.errors.append(f"Missing method documentation: {method}")
    for method in sorted(set(owner_in_doc) - set(owner_in_tests)):
        report.warnings.append(f"Documented method no longer exists: {method}")

    for method in sorted(set(owner_in_tests) & set(owner_in_doc)):
        if owner_in_tests[method] != owner_in_doc[method]:
            report.errors.append(
                f"Method {method} is documented under {owner_in_doc[method] or '(no class)'} "
                f"but belongs to {owner_in_tests[method]}"
            )

    return report


def main():
    # Find project root (where this script is in scripts/)
    project_root = Path(__file__).parent.parent

    test_file = project_root / 'tests' / 'test_integration_scenarios.py'
    doc_file = project_root / 'docs' / 'test_scenarios_business_summary.md'

    for path in (test_file, doc_file):
        if not path.exists():
            print(f"❌ File not found: {path}")
            sys.exit(1)

    report = check_sync(test_file, doc_file)
    documented_methods = {m for methods in report.doc_classes.values() for m in methods}

    print("=" * 60)
    print("Test Documentation Sync Validation")
    print("=" * 60)
    print(f"\nTest file: {test_file.name}")
    print(f"Doc file:  {doc_file.name}")
    print(f"\nScenario classes: {len(report.test_classes)}")
    print(f"Scenario methods: {sum(len(m) for m in report.test_classes.values())}")
    print(f"Documented methods: {len(documented_methods)}")

    if report.errors:
        print(f"\n❌ ERRORS ({len(report.errors)}):")
        for error in report.errors:
            print(f"   - {error}")

    if report.warnings:
        print(f"\n⚠️  WARNINGS ({len(report.warnings)}):")
        for warning in report.warnings:
            print(f"   - {warning}")

    if report.in_sync:
        print("\n✅ All scenarios are documented and in sync!")

    print("\n" + "=" * 60)

    print("\nCoverage by Class:")
    for cls, methods in sorted(report.test_classes.items()):
        print(f"\n  {'✅' if cls in report.doc_classes else '❌'} {cls}")
        for method in methods:
            print(f"      {'✅' if method in report.doc_classes.get(cls, []) else '❌'} {method}")

    sys.exit(1 if report.errors else 0)


if __name__ == '__main__':
    main()
