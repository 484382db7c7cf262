#!/usr/bin/env python3
"""
Command-line script to preview a production schedule.

Usage:
    python -m app.scripts.preview_schedule PLAN.json [--holidays FILE] [--now YYYY-MM-DD] [--json]

PLAN.json holds a list of stages, or an object with ``stages`` and/or
``orders`` (and optionally ``holidays``).

Options:
    --holidays FILE     Holiday CSV to use instead of the configured one
    --now YYYY-MM-DD    Reference date for work queue classification
    --json              Print JSON instead of tables
"""

import argparse
import json
import sys

from app.config import get_config
from app.logging_config import configure_logging
from app.production.scheduling.calendar import HolidayCalendarError
from app.production.scheduling.models import PlanValidationError
from app.production.scheduling.preview import run_preview_script


def build_config(args) -> dict:
    config_class = get_config()
    config = {key: getattr(config_class, key) for key in dir(config_class) if key.isupper()}
    if args.holidays:
        config['HOLIDAYS_FILE'] = args.holidays
    return config


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Recompute a production plan and preview the work queues'
    )
    parser.add_argument(
        'path',
        help='JSON file with stages and/or orders'
    )
    parser.add_argument(
        '--holidays',
        type=str,
        help='Holiday CSV file (date,name) overriding HOLIDAYS_FILE'
    )
    parser.add_argument(
        '--now',
        type=str,
        help='Reference date for classification (YYYY-MM-DD, defaults to today)'
    )
    parser.add_argument(
        '--json',
        action='store_true',
        help='Print JSON output instead of tables'
    )

    args = parser.parse_args(argv)
    config = build_config(args)
    configure_logging(log_level='WARNING', stream=sys.stderr)

    try:
        run_preview_script(args.path, config, now=args.now, as_json=args.json)
    except (PlanValidationError, HolidayCalendarError, json.JSONDecodeError, OSError) as e:
        print(f"\nError: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
