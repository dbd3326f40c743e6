from contextlib import contextmanager

from fastapi import Depends, HTTPException, status
from sqlmodel import Session

from .database import get_session
from .models.madness import MmPool
from .models.pool import Pool
from .models.squares import SquaresPool
from .services.madness import BracketLockedError, get_mm_pool
from .services.pools import get_pool
from .services.squares import get_squares_pool


@contextmanager
def service_errors():
    """Turn service-layer exceptions into HTTP errors."""
    try:
        yield
    except BracketLockedError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e).strip("'"))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def require_mm_pool(mm_pool_id: int, db: Session = Depends(get_session)) -> MmPool:
    with service_errors():
        return get_mm_pool(db, mm_pool_id)


def require_bowl_pool(pool_id: int, db: Session = Depends(get_session)) -> Pool:
    with service_errors():
        return get_pool(db, pool_id, pool_type="bowl_buster")


def require_squares_pool(pool_id: int, db: Session = Depends(get_session)) -> SquaresPool:
    with service_errors():
        return get_squares_pool(db, pool_id)
