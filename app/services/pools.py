import logging
import re
from typing import Optional

from sqlmodel import Session, select

from ..models.pool import Pool, PoolEntry
from ..models.team import Team

logger = logging.getLogger("app.pools")

POOL_TYPES = ("bowl_buster", "squares", "march_madness")


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "pool"


def unique_slug(db: Session, name: str) -> str:
    """Slug for a new pool, suffixed -2, -3, ... when taken."""
    base = slugify(name)
    slug = base
    suffix = 2
    while db.exec(select(Pool).where(Pool.slug == slug)).first():
        slug = f"{base}-{suffix}"
        suffix += 1
    return slug


def create_pool(
    db: Session,
    name: str,
    pool_type: str,
    demo_mode: bool = False,
    pick_against_spread: bool = False,
    commit: bool = True,
) -> Pool:
    if pool_type not in POOL_TYPES:
        raise ValueError(f"Unknown pool type '{pool_type}'")
    if not name.strip():
        raise ValueError("Pool name is required")

    pool = Pool(
        name=name.strip(),
        slug=unique_slug(db, name),
        pool_type=pool_type,
        demo_mode=demo_mode,
        pick_against_spread=pick_against_spread,
    )
    db.add(pool)
    if commit:
        db.commit()
        db.refresh(pool)
    else:
        db.flush()
    logger.info("Created %s pool '%s' (%s)", pool_type, pool.name, pool.slug)
    return pool


def get_pool(db: Session, pool_id: int, pool_type: Optional[str] = None) -> Pool:
    pool = db.get(Pool, pool_id)
    if not pool or (pool_type and pool.pool_type != pool_type):
        raise LookupError("Pool not found")
    return pool


def get_pool_by_slug(db: Session, slug: str) -> Pool:
    pool = db.exec(select(Pool).where(Pool.slug == slug)).first()
    if not pool:
        raise LookupError("Pool not found")
    return pool


def add_pool_entry(db: Session, pool: Pool, display_name: str) -> PoolEntry:
    display_name = display_name.strip()
    if not display_name:
        raise ValueError("Display name is required")

    existing = db.exec(
        select(PoolEntry).where(
            PoolEntry.pool_id == pool.id,
            PoolEntry.display_name == display_name
        )
    ).first()
    if existing:
        raise ValueError(f"Entry '{display_name}' already exists in this pool")

    entry = PoolEntry(pool_id=pool.id, display_name=display_name)
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def get_or_create_team(db: Session, name: str, abbrev: Optional[str] = None) -> Team:
    team = db.exec(select(Team).where(Team.name == name)).first()
    if not team:
        team = Team(name=name, abbrev=abbrev)
        db.add(team)
        db.flush()
    return team
