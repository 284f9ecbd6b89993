"""Shared path/query parameter parsing."""

from lms.core.errors import ValidationError
from lms.models.enums import EntityType


def parse_entity_type(value: str) -> EntityType:
    """Accept ``customer``, ``CUSTOMER``, ``tax-assessment`` and the like."""
    try:
        return EntityType(value.strip().upper().replace("-", "_"))
    except ValueError:
        raise ValidationError(f"Unknown entity type: {value}")
