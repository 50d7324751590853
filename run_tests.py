#!/usr/bin/env python3
"""
Test runner with shortcuts for the individual suites
"""

import subprocess
import sys
import argparse

SUITES = {
    "cart": ["tests/test_cart_store.py", "tests/test_vendor_guard.py",
             "tests/test_cart_persistence.py", "tests/test_cart_service.py"],
    "orders": ["tests/test_order_draft.py", "tests/test_order_service.py",
               "tests/test_pickup_codes.py"],
    "payments": ["tests/test_payment_service.py"],
    "offers": ["tests/test_offer_service.py"],
    "routers": ["tests/test_routers.py"],
    "deps": ["tests/test_dependencies.py"],
    "tasks": ["tests/test_celery_tasks.py"],
    "models": ["tests/test_models.py"],
}


def run_tests(test_patterns=None, verbose=False, coverage=False):
    """Run pytest

    Args:
        test_patterns: test files or node ids; all of tests/ when empty
        verbose: verbose output
        coverage: write a coverage report
    """
    cmd = [sys.executable, "-m", "pytest"]

    cmd.extend([
        "-v" if verbose else "-q",
        "--tb=short",
        "--disable-warnings",
    ])

    cmd.extend(test_patterns or ["tests/"])

    if coverage:
        cmd.extend([
            "--cov=kindplate",
            "--cov=tasks",
            "--cov-report=html:htmlcov",
            "--cov-report=term-missing"
        ])

    print(f"Running: {' '.join(cmd)}")
    print("=" * 50)

    try:
        result = subprocess.run(cmd, check=True)
        print("\nTests finished")
        return result.returncode == 0
    except subprocess.CalledProcessError as e:
        print(f"\nTests failed, exit code: {e.returncode}")
        return False


def main():
    parser = argparse.ArgumentParser(description="KindPlate test runner")
    parser.add_argument(
        "--suite",
        choices=sorted(SUITES),
        help="run only one suite"
    )
    parser.add_argument(
        "--coverage",
        action="store_true",
        help="generate a coverage report"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="verbose output"
    )
    parser.add_argument(
        "test_name",
        nargs="?",
        help="single test, e.g. test_cart_store.py::TestAddItem::test_merges_quantities"
    )

    args = parser.parse_args()

    if args.test_name:
        print(f"Running test: {args.test_name}")
        return 0 if run_tests([f"tests/{args.test_name}"], verbose=True) else 1

    patterns = SUITES[args.suite] if args.suite else None
    success = run_tests(patterns, args.verbose, args.coverage)

    if args.coverage and success:
        print("\nCoverage report written to htmlcov/")

    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
