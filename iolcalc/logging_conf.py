import logging, sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s"

class RequestIdFilter(logging.Filter):
    def filter(self, record):
        if not hasattr(record, "request_id"):
            record.request_id = "-"
        return True

def configure_logging(level: str | None = None):
    """Attach a stdout handler to the root logger. Safe to call more than once."""
    from .config import settings

    root = logging.getLogger()
    root.setLevel(level or settings.log_level)
    if any(getattr(h, "_iolcalc", False) for h in root.handlers):
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestIdFilter())
    handler._iolcalc = True
    root.addHandler(handler)
