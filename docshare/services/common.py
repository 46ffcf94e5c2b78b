import uuid

from docshare.errors import NotFoundError, ValidationError


def coerce_uuid(value):
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))


def parse_id(value, label: str = "Resource") -> uuid.UUID:
    """Coerce a path/body identifier, treating malformed ids as unknown."""
    if value is None:
        raise ValidationError(f"{label} id is required")
    try:
        return coerce_uuid(value)
    except (TypeError, ValueError):
        raise NotFoundError(f"{label} not found")


def normalize_text(value: str | None) -> str | None:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


def apply_ordering(query, order_by, order_dir, allowed_columns):
    if order_by not in allowed_columns:
        raise ValidationError(
            f"Invalid order_by. Allowed: {', '.join(sorted(allowed_columns))}"
        )
    column = allowed_columns[order_by]
    if order_dir == "desc":
        return query.order_by(column.desc())
    return query.order_by(column.asc())


def apply_pagination(query, limit, offset):
    return query.limit(limit).offset(offset)
