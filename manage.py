#!/usr/bin/env python
"""Django's command-line utility for administrative tasks (DEV settings by default)."""
import os
import sys


def main():
    # SQLite, DEBUG=True, eager Celery, in-memory channel layer
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "supplytrack.settings_dev")
    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        raise ImportError(
            "Couldn't import Django. Make sure it's installed:\n"
            "  pip install -e .[test]"
        ) from exc
    execute_from_command_line(sys.argv)


if __name__ == "__main__":
    main()
