"""
Structured JSON logger for the tenant storage service.
"""
import logging
import json
from datetime import datetime, timezone

from tenant_storage.config import settings


def get_request_context():
    # Import lazily to avoid import cycles
    from tenant_storage.monitoring.context import get_request_context as _g
    return _g()

class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "component": getattr(record, "component", None) or record.module,
            "request_id": getattr(record, "request_id", None),
            "tenant_id": str(getattr(record, "tenant_id", None)) if getattr(record, "tenant_id", None) is not None else None,
            "user_id": str(getattr(record, "user_id", None)) if getattr(record, "user_id", None) is not None else None,
        }
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_record)

logger = logging.getLogger("tenant_storage")
logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
handler = logging.StreamHandler()
handler.setFormatter(JsonFormatter())
logger.handlers = [handler]

# Helper to log with context
def log(level: str, message: str, component: str = None, request_id: str = None, tenant_id: str = None, user_id: str = None, exc_info: bool = False, **kwargs):
    # Map legacy 'module' kwarg to 'component' to avoid LogRecord collision
    if "module" in kwargs and not component:
        component = kwargs.pop("module")
    # Fill missing fields from contextvars
    ctx = get_request_context()
    if request_id is None:
        request_id = ctx.get("request_id")
    if tenant_id is None:
        tenant_id = ctx.get("tenant_id")
    if user_id is None:
        user_id = ctx.get("user_id")

    extra = {
        "request_id": request_id,
        "tenant_id": tenant_id,
        "user_id": user_id,
        "component": component,
        **kwargs
    }
    logger.log(getattr(logging, level.upper(), logging.INFO), message, extra=extra, exc_info=exc_info)
