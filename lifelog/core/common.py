import json
import uuid
from datetime import datetime, timezone
from typing import Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError
from lifelog.core.logger import setup_logger

logger = setup_logger(__name__, include_location=True)


# =============================================================================
# Pydantic Common Models and Utilities
# =============================================================================

class AppBaseModel(BaseModel):
    """
    Base Pydantic model with common configuration.

    Used across all Lifelog schemas to provide consistent:
    - ORM mode support (from_attributes=True)
    - Automatic string coercion for numeric types
    """
    model_config = ConfigDict(from_attributes=True, coerce_numbers_to_str=True)


T = TypeVar("T", bound=BaseModel)


def transform(class_constructor: Type[T], arg: dict) -> T:
    """
    Transform a dict into a Pydantic model instance with error logging.

    Raises:
        ValidationError: If the data does not conform to the model.
    """
    try:
        return class_constructor(**arg)
    except ValidationError as e:
        logger.error(
            f"{class_constructor.__name__} Validation error: "
            f"{json.dumps(e.errors(include_input=False, include_url=False), default=str)}"
        )
        raise


#===================================
# identifiers
#===================================

def new_external_id() -> str:
    """Opaque, globally unique identifier exposed to API clients."""
    return str(uuid.uuid4())


#===================================
#  time
#===================================

def to_utc(dt: datetime) -> datetime:
    """Normalize to UTC. Naive datetimes are taken to be UTC already."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_rfc3339(dt: datetime) -> str:
    """RFC3339 in UTC with a trailing 'Z', e.g. 2018-11-25T11:26:08Z."""
    return to_utc(dt).isoformat().replace("+00:00", "Z")


#===================================
# environment
#===================================

def is_on(value: str) -> bool:
    return str(value).strip().lower() in ("true", "1", "yes", "on", "y", "t")


def is_off(value: str) -> bool:
    return str(value).strip().lower() in ("false", "0", "no", "off", "n", "f")
