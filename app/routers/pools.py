from fastapi import APIRouter, Depends
from sqlmodel import Session, select

from ..database import get_session
from ..dependencies import service_errors
from ..models.madness import MmPool
from ..models.squares import SquaresPool
from ..services.pools import get_pool_by_slug

router = APIRouter(prefix="/api/pools", tags=["pools"])


@router.get("/{slug}")
async def get_pool(slug: str, db: Session = Depends(get_session)):
    """Look a pool up by its public slug, with the id of its type-specific record."""
    with service_errors():
        pool = get_pool_by_slug(db, slug)

    detail_id = None
    if pool.pool_type == "march_madness":
        mm_pool = db.exec(select(MmPool).where(MmPool.pool_id == pool.id)).first()
        detail_id = mm_pool.id if mm_pool else None
    elif pool.pool_type == "squares":
        sq_pool = db.exec(select(SquaresPool).where(SquaresPool.pool_id == pool.id)).first()
        detail_id = sq_pool.id if sq_pool else None

    return {
        "id": pool.id,
        "name": pool.name,
        "slug": pool.slug,
        "pool_type": pool.pool_type,
        "demo_mode": pool.demo_mode,
        "pick_against_spread": pool.pick_against_spread,
        "detail_id": detail_id,
    }
