"""Human-readable reference ids: ``<PREFIX>-<YEAR>-<NNNNNN>``."""

from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

CUSTOMER_PREFIX = "CUS"
TAX_ASSESSMENT_PREFIX = "TAX"


def property_prefix(district_code: str) -> str:
    return district_code.strip().upper()


async def generate_reference_id(
    db: AsyncSession,
    model,
    prefix: str,
    year: Optional[int] = None,
) -> str:
    """Next free reference id for ``model`` in ``year``.

    Sequence numbers restart every year and are zero-padded to six digits,
    so the lexicographic maximum is also the numeric one. The unique index
    on ``reference_id`` rejects a concurrent duplicate.
    """
    year = year or datetime.utcnow().year
    stem = f"{prefix}-{year}-"

    result = await db.execute(
        select(model.reference_id)
        .where(model.reference_id.like(f"{stem}%"))
        .order_by(model.reference_id.desc())
        .limit(1)
    )
    last = result.scalar_one_or_none()

    next_number = 1
    if last:
        next_number = int(last.rsplit("-", 1)[1]) + 1

    return f"{stem}{next_number:06d}"
