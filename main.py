#!/usr/bin/env python3
"""Entry point for the CDK inspector when run from a source checkout."""

from src.cdk_inspector.cli import run

if __name__ == "__main__":
    run()
