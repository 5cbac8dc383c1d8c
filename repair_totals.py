import sys
import asyncio
import logging
from autoquote.core.config import settings
from autoquote.services.tasks import repair_quote_totals_async

USAGE = "Usage: python repair_totals.py [--batch-size N] [--days N]"


def parse_args(argv):
    options = {"batch_size": settings.REPAIR_BATCH_SIZE, "days": settings.REPAIR_LOOKBACK_DAYS}
    flags = {"--batch-size": "batch_size", "--days": "days"}

    args = list(argv)
    while args:
        flag = args.pop(0)
        if flag not in flags or not args:
            raise ValueError(f"Unexpected argument: {flag}")
        value = args.pop(0)
        if not value.isdigit() or int(value) <= 0:
            raise ValueError(f"{flag} expects a positive integer, got '{value}'")
        options[flags[flag]] = int(value)
    return options


def main():
    logging.basicConfig(level=settings.LOG_LEVEL)

    try:
        options = parse_args(sys.argv[1:])
    except ValueError as e:
        print(f"Error: {e}")
        print(USAGE)
        sys.exit(1)

    try:
        report = asyncio.run(repair_quote_totals_async(options["batch_size"], options["days"]))
    except Exception as e:
        print(f"Error repairing quote totals: {str(e)}")
        sys.exit(1)

    print(
        f"Repair completed: {report['fixed']} fixed, {report['skipped']} skipped, "
        f"{report['not_found']} not found in source, {report['errors']} failed"
    )
    sys.exit(1 if report["errors"] else 0)


if __name__ == "__main__":
    main()
