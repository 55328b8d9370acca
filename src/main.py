import sys
import logging
from typing import List, Optional

from config import Settings
from errors import SourceError
from payments_engine import PaymentsEngine
from records import write_accounts

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_SOURCE_ERROR = 1
EXIT_USAGE = 2


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    if len(argv) != 1:
        print("Usage: python main.py <input.csv>", file=sys.stderr)
        return EXIT_USAGE

    try:
        settings = Settings.from_env()
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return EXIT_USAGE

    logging.basicConfig(
        level=settings.log_level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    engine = PaymentsEngine(num_workers=settings.num_workers, queue_size=settings.queue_size)
    try:
        snapshots = engine.process_file(argv[0])
    except SourceError as e:
        logger.error(str(e))
        return EXIT_SOURCE_ERROR

    write_accounts(snapshots, sys.stdout)

    stats = engine.stats
    print(f"Processed: {stats.processed}, Failed: {stats.failed}", file=sys.stderr)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
