"""CLI entry point."""

import sys

from common.logging_config import get_logger, setup_client_logging
from cli.commands import get_context
from cli.repl import repl_loop


def main() -> None:
    """Entry point for CLI."""
    debug = '--debug' in sys.argv
    setup_client_logging(debug=debug)
    logger = get_logger('cli')

    if debug:
        logger.info("Debug logging enabled")
        sys.argv.remove('--debug')
    elif get_context().config.is_debug_logging():
        setup_client_logging(debug=True)
        logger.info("Debug logging enabled from config")

    logger.info("CLI starting...")
    try:
        repl_loop()
    except Exception as e:
        logger.error(f"CLI error: {e}", exc_info=True)
        raise
    finally:
        logger.info("CLI exiting")


if __name__ == "__main__":
    main()
