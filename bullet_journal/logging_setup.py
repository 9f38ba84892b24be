import logging

from bullet_journal import config

_configured = False


def setup_logging(level=None) -> None:
    """Configure root logging once; later calls are no-ops."""
    global _configured
    if _configured:
        return
    logging.basicConfig(
        level=(level or config.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _configured = True
