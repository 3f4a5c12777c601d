import logging
import json
import sys
from datetime import datetime, timezone
from typing import Optional
import os


class StructuredJSONFormatter(logging.Formatter):
    """Formatter emitting one JSON object per record for log shippers"""

    _RESERVED = (
        'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
        'module', 'exc_info', 'exc_text', 'stack_info', 'lineno', 'funcName',
        'created', 'msecs', 'relativeCreated', 'thread', 'threadName',
        'processName', 'process', 'taskName', 'getMessage',
        'request_id', 'user_id', 'provider', 'coordinates', 'plan_id',
        'response_time_ms',
    )

    def __init__(self, service_name: str = "ev-trip-planner"):
        super().__init__()
        self.service_name = service_name
        self.hostname = os.environ.get('HOSTNAME', 'localhost')

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "service": self.service_name,
            "hostname": self.hostname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Request and provider context
        if hasattr(record, 'request_id'):
            log_entry["request_id"] = record.request_id
        if hasattr(record, 'user_id'):
            log_entry["user_id"] = record.user_id
        if hasattr(record, 'plan_id'):
            log_entry["plan_id"] = record.plan_id
        if hasattr(record, 'provider'):
            log_entry["provider"] = record.provider
        if hasattr(record, 'coordinates'):
            log_entry["coordinates"] = record.coordinates
        if hasattr(record, 'response_time_ms'):
            log_entry["response_time_ms"] = record.response_time_ms

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info)
            }

        for key, value in record.__dict__.items():
            if key not in self._RESERVED and not key.startswith('_'):
                log_entry.setdefault("extra", {})[key] = value

        return json.dumps(log_entry, default=str, separators=(',', ':'))


class DevelopmentFormatter(logging.Formatter):
    """Human-readable formatter for development"""

    def __init__(self):
        super().__init__(
            fmt='%(asctime)s | %(levelname)8s | %(name)30s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )


def setup_logging(
    level: str = "INFO",
    use_json: Optional[bool] = None,
    service_name: str = "ev-trip-planner"
) -> None:
    """Setup logging configuration for the trip planner service"""

    if use_json is None:
        use_json = (
            os.environ.get('APP_ENV') == 'production' or
            os.environ.get('LOG_FORMAT', '').lower() == 'json'
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    if use_json:
        formatter = StructuredJSONFormatter(service_name)
    else:
        formatter = DevelopmentFormatter()
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    configure_planner_loggers(level)

    logger = logging.getLogger(__name__)
    logger.info(
        "Logging configured",
        extra={
            "log_format": "json" if use_json else "development",
            "log_level": level,
            "service": service_name
        }
    )


def configure_planner_loggers(level: str) -> None:
    """Configure loggers for planner components"""

    loggers = [
        'ev_trip_planner.services.condition_sampler',
        'ev_trip_planner.services.station_aggregator',
        'ev_trip_planner.services.trip_orchestrator',
        'ev_trip_planner.nominatim_client',
        'ev_trip_planner.osrm_client',
        'ev_trip_planner.openweather_client',
        'ev_trip_planner.openchargemap_client',
        'ev_trip_planner.config',
    ]
    for logger_name in loggers:
        logging.getLogger(logger_name).setLevel(getattr(logging, level.upper()))

    # Suppress noisy third-party loggers
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)
    logging.getLogger('asyncio').setLevel(logging.WARNING)


def get_provider_logger(name: str, provider: str, coordinates: tuple) -> logging.LoggerAdapter:
    """Get logger carrying provider and coordinate context"""
    logger = logging.getLogger(name)

    class ContextAdapter(logging.LoggerAdapter):
        def process(self, msg, kwargs):
            extra = kwargs.get('extra', {})
            extra.update({
                'provider': provider,
                'coordinates': {'lat': coordinates[0], 'lon': coordinates[1]},
            })
            kwargs['extra'] = extra
            return msg, kwargs

    return ContextAdapter(logger, {})
