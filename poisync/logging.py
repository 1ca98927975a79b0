import logging
import sys
import structlog
from poisync.core.config import Settings, settings as default_settings

# Request lines are logged by LoggingMiddleware with the request id bound
QUIET_LOGGERS = {"uvicorn.access": logging.WARNING, "httpx": logging.WARNING}


def configure_logging(settings: Settings = default_settings):
    """
    Configures structlog to intercept standard library logs and setup
    JSON rendering for production or Console rendering for local development.

    Every line carries the service name and version.
    """
    is_local = settings.ENV.lower() == "development"

    def add_service(logger, method_name, event_dict):
        event_dict.setdefault("service", settings.PROJECT_NAME)
        event_dict.setdefault("version", settings.VERSION)
        return event_dict

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        add_service,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if is_local:
        processors = shared_processors + [structlog.dev.ConsoleRenderer()]
    else:
        processors = shared_processors + [
            structlog.processors.CallsiteParameterAdder(
                {
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.FUNC_NAME,
                }
            ),
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=settings.LOG_LEVEL.upper())

    for _log in ["uvicorn", "uvicorn.error", "uvicorn.access"]:
        logger = logging.getLogger(_log)
        logger.handlers = []
        logger.propagate = True
    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)
