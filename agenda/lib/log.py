import logging
import sys
from pathlib import Path

__all__ = ["setup_logging"]

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class _ConsoleFilter(logging.Filter):
    """Our own records pass at the handler level; third-party ones only at ERROR+."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == "agenda" or record.name.startswith("agenda."):
            return True
        return record.levelno >= logging.ERROR


def setup_logging(log_path: Path | None = None, console_level: int = logging.WARNING) -> None:
    """Console handler on stderr plus an optional DEBUG file log. Call once, early."""
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleFilter())
    root.addHandler(console)

    if log_path is not None:
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(str(log_path), encoding="utf-8")
        except OSError:
            logging.getLogger(__name__).warning("cannot open log file %s; logging to console only", log_path)
        else:
            fh.setLevel(logging.DEBUG)
            fh.setFormatter(fmt)
            root.addHandler(fh)

    logging.captureWarnings(True)
