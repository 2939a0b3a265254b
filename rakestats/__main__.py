"""
CLI entry point for the report.

Usage:
    python -m rakestats 2025-06-01 2025-06-30
    python -m rakestats 2025-06-01 2025-06-30 4883380 4895351 --config rakestats.yml
"""
import sys

from rakestats.cli import main

if __name__ == '__main__':
    sys.exit(main())
