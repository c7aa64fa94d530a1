#!/usr/bin/env python3
"""Test runner for Utterson with coverage reporting."""

import sys
import subprocess
import os
from pathlib import Path


def run_tests():
    """Run all tests with coverage reporting."""

    # Change to the project directory
    os.chdir(Path(__file__).parent)

    print("Running Utterson Test Suite")
    print("=" * 50)

    print("Installing test requirements...")
    try:
        subprocess.run([
            sys.executable, "-m", "pip", "install", "-r", "requirements-test.txt"
        ], check=True, capture_output=True)
    except subprocess.CalledProcessError as e:
        print(f"Failed to install test requirements: {e}")
        return False

    result = subprocess.run([
        sys.executable, "-m", "pytest",
        "tests/",
        "-v",
        "--cov=utterson_pkg",
        "--cov-report=term-missing",
    ], check=False)

    if result.returncode == 0:
        print("\nAll tests passed!")
        return True
    print(f"\nTests failed with return code {result.returncode}")
    return False


if __name__ == "__main__":
    sys.exit(0 if run_tests() else 1)
