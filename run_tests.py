#!/usr/bin/env python3
"""
Test runner script for HAL.
Provides convenient commands for running each test suite.
"""
import sys
import subprocess
import argparse


SUITES = {
    "unit": ("tests/unit", "Unit Tests"),
    "integration": ("tests/integration", "Integration Tests"),
    "property": ("tests/property", "Property Tests"),
}


def run_command(cmd, description):
    """Run a command and handle errors."""
    print(f"\n{'='*60}")
    print(f"Running: {description}")
    print(f"Command: {' '.join(cmd)}")
    print(f"{'='*60}")

    try:
        subprocess.run(cmd, check=True, capture_output=False)
        print(f"\n✅ {description} completed successfully")
        return True
    except subprocess.CalledProcessError as e:
        print(f"\n❌ {description} failed with exit code {e.returncode}")
        return False
    except FileNotFoundError:
        print(f"\n❌ Command not found: {cmd[0]}")
        print("Make sure the test extra is installed: pip install -e .[test]")
        return False


def main():
    parser = argparse.ArgumentParser(description="HAL Test Runner")
    suite = parser.add_mutually_exclusive_group()
    suite.add_argument("--unit", action="store_true", help="Run unit tests only")
    suite.add_argument("--integration", action="store_true", help="Run integration tests only")
    suite.add_argument("--property", action="store_true", help="Run property-based tests only")
    parser.add_argument("--coverage", action="store_true", help="Run tests with coverage report")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--fast", action="store_true", help="Skip slow tests")
    parser.add_argument("--test", "-t", help="Run specific test function")

    args = parser.parse_args()

    cmd = [sys.executable, "-m", "pytest", "-v" if args.verbose else "-q"]

    if args.coverage:
        cmd.extend(["--cov=src", "--cov-report=term-missing"])

    description = "All Tests"
    for name, (path, label) in SUITES.items():
        if getattr(args, name):
            cmd.append(path)
            description = label

    if args.test:
        cmd.extend(["-k", args.test])
        description += f" matching {args.test}"

    if args.fast:
        cmd.extend(["-m", "not slow"])
        description += " (excluding slow tests)"

    if run_command(cmd, description):
        print("\n🎉 All tests passed!")
    else:
        print("\n💥 Some tests failed!")
        sys.exit(1)


if __name__ == "__main__":
    main()
