"""Year-scoped human-readable identifiers.

Every ID is ``PREFIX-YYYY-NNNN``. The counter for a ``(series_code, year)``
pair is advanced by a single ``INSERT ... ON CONFLICT DO UPDATE ... RETURNING``
statement, so concurrent callers can never observe the same value.
"""

from datetime import datetime
from typing import List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from mms.models.naming_series import NamingSeriesCounter

logger = logging.getLogger(__name__)

# category -> (series_code, prefix)
SERIES = {
    "individual_member": ("member_ind", "EAC-MBR"),
    "organization_member": ("member_org", "EAC-ORG"),
    "individual_application": ("app_ind", "MBR-APP"),
    "organization_application": ("app_org", "ORG-APP"),
}

_UPSERT_BY_DIALECT = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def format_id(prefix: str, year: int, counter: int) -> str:
    return f"{prefix}-{year}-{counter:04d}"


def _increment(db: Session, series_code: str, year: int) -> int:
    dialect = db.get_bind().dialect.name
    insert = _UPSERT_BY_DIALECT.get(dialect)
    if insert is None:
        raise RuntimeError(f"Naming series needs an upsert-capable database, got '{dialect}'")

    table = NamingSeriesCounter.__table__
    stmt = (
        insert(table)
        .values(series_code=series_code, year=year, counter=1)
        .on_conflict_do_update(
            index_elements=[table.c.series_code, table.c.year],
            set_={"counter": table.c.counter + 1},
        )
        .returning(table.c.counter)
    )
    return db.execute(stmt).scalar_one()


def next_id(db: Session, category: str, year: Optional[int] = None) -> str:
    """Issue the next identifier for ``category``.

    The increment joins the caller's transaction and is not committed here.
    Database errors propagate to the caller.
    """
    if category not in SERIES:
        raise ValueError(f"Unknown naming series category: {category}")

    series_code, prefix = SERIES[category]
    year = year or datetime.utcnow().year
    counter = _increment(db, series_code, year)
    generated = format_id(prefix, year, counter)
    logger.info(f"Issued {generated} from series {series_code}/{year}")
    return generated


def next_application_id(db: Session, applicant_kind: str) -> str:
    return next_id(db, f"{applicant_kind}_application")


def next_member_number(db: Session, member_kind: str) -> str:
    return next_id(db, f"{member_kind}_member")


def get_current_counters(db: Session) -> List[dict]:
    rows = db.execute(
        select(NamingSeriesCounter).order_by(NamingSeriesCounter.series_code, NamingSeriesCounter.year.desc())
    ).scalars().all()
    return [
        {
            "series_code": row.series_code,
            "year": row.year,
            "counter": row.counter,
            "last_issued": format_id(_prefix_for(row.series_code), row.year, row.counter),
        }
        for row in rows
    ]


def _prefix_for(series_code: str) -> str:
    for code, prefix in SERIES.values():
        if code == series_code:
            return prefix
    return series_code.upper()
