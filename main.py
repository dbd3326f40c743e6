import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.config import LOG_LEVEL
from app.database import create_db_and_tables

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup: Create database tables
    create_db_and_tables()
    logger.info("Database ready")
    yield


# Initialize FastAPI app
app = FastAPI(
    title="Sports Pools",
    description="Bowl picks, CFP brackets, squares and March Madness blind-draw pools",
    version="1.0.0",
    lifespan=lifespan
)

# Include routers
from app.routers import pools, madness, bowl, cfp, squares

app.include_router(pools.router)
app.include_router(madness.router)
app.include_router(bowl.router)
app.include_router(cfp.router)
app.include_router(squares.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
