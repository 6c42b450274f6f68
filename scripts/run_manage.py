#!/usr/bin/env python
"""
Helper script to run Django management commands with .env values taking precedence.

A DATABASE_URL exported in the shell (often a stale localhost one) would
otherwise win over the project's .env.

Usage:
    python scripts/run_manage.py <command> [args...]

Examples:
    python scripts/run_manage.py migrate
    python scripts/run_manage.py ingest_dataset --dataset <id> --fandom <uuid> --platform tiktok
    python scripts/run_manage.py discover_fandoms --corroborate 5
    python scripts/run_manage.py fetch_regional_trends
    python scripts/run_manage.py recommend_fandoms --segment postpaid
"""

import os
import sys
from pathlib import Path

from dotenv import dotenv_values

# Ensure we're in the project root
PROJECT_ROOT = Path(__file__).resolve().parent.parent
os.chdir(PROJECT_ROOT)
sys.path.insert(0, str(PROJECT_ROOT))


def load_env_with_override():
    """Force-override DATABASE_URL with the .env value if one is set there."""
    env_path = PROJECT_ROOT / ".env"
    if not env_path.exists():
        return

    env_value = dotenv_values(env_path).get("DATABASE_URL")
    if not env_value:
        return

    current = os.environ.get("DATABASE_URL", "")
    if current and current != env_value:
        print(
            f"Overriding shell DATABASE_URL ({current[:50]}...) with .env value",
            file=sys.stderr,
        )
    os.environ["DATABASE_URL"] = env_value


def main():
    load_env_with_override()

    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "fanpulse.settings")

    from django.core.management import execute_from_command_line

    # Build argv: ['manage.py', <command>, <args>...]
    argv = ["manage.py"] + sys.argv[1:]
    execute_from_command_line(argv)


if __name__ == "__main__":
    main()
