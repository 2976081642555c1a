import logging, sys

def setup_logging(level: str = "WARNING"):
    logger = logging.getLogger()
    if logger.handlers:  # don’t double add when called twice in one process
        logger.setLevel(getattr(logging, level.upper(), logging.WARNING))
        return
    logger.setLevel(getattr(logging, level.upper(), logging.WARNING))
    # stdout may carry the SQL stream, so diagnostics go to stderr
    h = logging.StreamHandler(sys.stderr)
    fmt = logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s :: %(message)s"
    )
    h.setFormatter(fmt)
    logger.addHandler(h)
