"""Main entry point for wordloop."""
import logging

from wordloop.app import WordLoop
from wordloop.logging_config import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    """Run the console application."""
    setup_logging("Starting wordloop ...")
    try:
        WordLoop().run()
    finally:
        logger.info("wordloop stopped")


if __name__ == "__main__":
    main()
