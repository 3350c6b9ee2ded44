import logging
import os

from devserver_console.runtime_config import LOG_LEVEL_ENV, get_data_dir

LOG_FILE_NAME = "devconsole.log"


def setup_logging() -> None:
    """Send log records to a file in the data directory.

    The terminal is in raw mode while the console runs, so nothing is logged to
    stderr.
    """
    log_dir = get_data_dir()
    log_dir.mkdir(parents=True, exist_ok=True)

    level_name = os.environ.get(LOG_LEVEL_ENV, "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger("devserver_console")
    root.setLevel(level)

    # Avoid stacking handlers when the app is created more than once (tests)
    for handler in list(root.handlers):
        if isinstance(handler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()

    file_handler = logging.FileHandler(log_dir / LOG_FILE_NAME)
    file_handler.setLevel(level)
    formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
