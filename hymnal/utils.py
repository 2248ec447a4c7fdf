import logging
import re
from datetime import datetime, timezone


# Custom logging formatter to support colors
class ColoredFormatter(logging.Formatter):
    # Define color codes
    COLORS = {
        'DEBUG': '\033[94m',   # Blue
        'INFO': '\033[92m',    # Green
        'WARNING': '\033[93m', # Yellow
        'ERROR': '\033[91m',   # Red
        'CRITICAL': '\033[95m' # Magenta
    }
    RESET = '\033[0m'  # Reset color

    def format(self, record):
        # Add color to the log level name
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"

        return super().format(record)


# Filter to remove date from http access logs
class FilterRemoveDateFromWerkzeugLogs(logging.Filter):
    # '192.168.0.102 - - [30/Jun/2024 01:14:03] "%s" %s %s' -> '192.168.0.102 - "%s" %s %s'
    pattern: re.Pattern = re.compile(r' - - \[.+?] "')

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = self.pattern.sub(' - "', str(record.msg))
        return True


def setup_logging(level=logging.INFO):
    """Configure the main logger with the colored formatter"""
    logger = logging.getLogger("main")
    if not any(isinstance(h.formatter, ColoredFormatter) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(ColoredFormatter("[%(asctime)s] %(levelname)s (%(module)s) %(message)s", "%H:%M:%S"))
        logger.addHandler(handler)
    logger.setLevel(level)
    logging.getLogger("werkzeug").addFilter(FilterRemoveDateFromWerkzeugLogs())
    return logger


def now_utc():
    """Get current UTC time as timezone-aware datetime"""
    return datetime.now(timezone.utc)


def ensure_utc(dt):
    """Ensure a datetime is timezone-aware in UTC"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_datetime(value, default=None):
    """Parse an ISO-8601 string (or epoch milliseconds) into an aware datetime"""
    if value is None or value == "":
        return default
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return default
    if isinstance(value, str):
        try:
            return ensure_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            return default
    return default


def format_datetime(dt):
    """Format datetime as ISO-8601 string"""
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()


def to_int(value, default=0):
    """Lenient int conversion used when normalizing remote records"""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default


def as_dict(value):
    """Return value if it is a dict, an index-keyed dict for lists, else {}"""
    if isinstance(value, dict):
        return value
    if isinstance(value, list):
        return {str(i): v for i, v in enumerate(value) if v is not None}
    return {}
