"""CLI command printing one advice timeline"""

import logging
import sys

from advice_widget.services.advice_fetcher import AdviceFetcher
from advice_widget.services.timeline_scheduler import TimelineScheduler


def setup_logging() -> None:
    """Configure logging for CLI (stderr, so stdout stays JSON)"""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def main() -> int:
    """
    Main entry point for the timeline CLI command

    Returns:
        int: Exit code (0 for success, 1 for failure)
    """
    setup_logging()
    logger = logging.getLogger(__name__)

    try:
        with AdviceFetcher() as fetcher:
            decision = TimelineScheduler(fetcher=fetcher).schedule()
    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return 1

    print(decision.model_dump_json(indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
