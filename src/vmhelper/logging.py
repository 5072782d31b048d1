import logging
from rich.console import Console
from rich.logging import RichHandler
def setup_logging(level: str = "INFO") -> logging.Logger:
    """Send vmhelper log records to stderr through rich, so stdout stays clean for command output."""
    handler = RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    log = logging.getLogger("vmhelper")
    log.handlers[:] = [handler]
    log.setLevel(level.upper())
    log.propagate = False
    return log
