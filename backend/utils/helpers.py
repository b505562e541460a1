# utils/helpers.py
from errors import ValidationError

DEFAULT_LIMIT = 20
MAX_LIMIT = 50


def safe_strip(value):
    """Safely strip a string value, handling None"""
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped if stripped else None
    return value


def parse_limit(value, default=DEFAULT_LIMIT, maximum=MAX_LIMIT):
    """Parse a ?limit= query value, clamped to 1..maximum"""
    value = safe_strip(value)
    if value is None:
        return default
    try:
        limit = int(value)
    except (TypeError, ValueError):
        raise ValidationError('limit must be an integer')
    return max(1, min(limit, maximum))


def require_param(args, name, message):
    """Return a stripped query parameter or raise ValidationError with message"""
    value = safe_strip(args.get(name))
    if value is None:
        raise ValidationError(message)
    return value
