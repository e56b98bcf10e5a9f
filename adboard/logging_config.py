"""
Root logger configuration.

``setup_logging`` attaches a console handler (and optionally a file
handler) to the root logger.  It is called from the application
lifespan and is a no-op when handlers are already present, so repeated
app startups in the test suite do not stack duplicate handlers.
"""
import logging
from pathlib import Path


def setup_logging(level: str = "INFO", logfile: str | None = None) -> None:
    """
    Configure the root logger once.

    Parameters
    ----------
    level:
        Level name such as ``"DEBUG"`` or ``"info"`` (case insensitive).
        Unknown names fall back to INFO.
    logfile:
        Optional path of a file that receives the same records as the
        console.  Resolved relative to the working directory.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)

    if logfile:
        file_handler = logging.FileHandler(Path(logfile).resolve(), encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
