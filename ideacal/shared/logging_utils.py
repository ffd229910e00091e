import logging
from typing import Any, Dict, Optional


_LOGGER = logging.getLogger("ideacal")


def log(level: int, batch_id: Optional[str], message: str, **dimensions: Any) -> None:
    dims: Dict[str, Any] = {"batchId": batch_id} if batch_id else {}
    dims.update(dimensions)
    try:
        _LOGGER.log(level, message, extra={"custom_dimensions": dims})
    except Exception:
        # Fallback if extra/custom_dimensions not supported in the environment
        _LOGGER.log(level, f"{message} | {dims}")


def info(batch_id: Optional[str], message: str, **dimensions: Any) -> None:
    log(logging.INFO, batch_id, message, **dimensions)


def warning(batch_id: Optional[str], message: str, **dimensions: Any) -> None:
    log(logging.WARNING, batch_id, message, **dimensions)


def error(batch_id: Optional[str], message: str, **dimensions: Any) -> None:
    log(logging.ERROR, batch_id, message, **dimensions)
