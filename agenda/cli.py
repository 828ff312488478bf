import logging
import sys
from pathlib import Path

import fncli

from . import config, db
from .core.errors import AgendaError
from .lib.log import setup_logging

logger = logging.getLogger(__name__)


def run(argv: list[str]) -> int:
    """Dispatch `agenda <argv...>` and map domain errors to exit code 1."""
    fncli.autodiscover(Path(__file__).parent, "agenda")
    try:
        return fncli.dispatch(["agenda", *argv])
    except AgendaError as e:
        logger.debug("command failed: %s", e)
        sys.stderr.write(f"{e}\n")
        return 1


def main():
    setup_logging(config.LOG_PATH, config.get_log_level())
    db.init()

    user_args = sys.argv[1:]
    if not user_args:
        from .views import dashboard

        try:
            dashboard()
        except AgendaError as e:
            sys.stderr.write(f"{e}\n")
            sys.exit(1)
        return
    sys.exit(run(user_args))


if __name__ == "__main__":
    main()
