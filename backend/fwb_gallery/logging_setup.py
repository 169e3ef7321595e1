from __future__ import annotations
import logging, sys
import structlog
import structlog.stdlib
from fwb_gallery.config import settings

def _service_fields(logger, method_name, event_dict):
    # every line says which deployment wrote it
    event_dict.setdefault("service", settings.app_name)
    event_dict.setdefault("env", settings.environment)
    event_dict.setdefault("version", settings.app_version)
    return event_dict

def configure_logging():
    level = logging.DEBUG if settings.environment == "dev" else logging.INFO
    shared = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.add_log_level,
        _service_fields,
    ]
    structlog.configure(
        processors=[*shared, structlog.processors.EventRenamer("message"), structlog.processors.JSONRenderer()],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
    # stdlib loggers (uvicorn, sqlalchemy, alembic, rq) go through the same JSON pipeline
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.EventRenamer("message"),
            structlog.processors.JSONRenderer(),
        ],
    ))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
    # SQL echo stays off unless asked for explicitly
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
