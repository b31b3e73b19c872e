import logging

from fastapi import FastAPI
from contextlib import asynccontextmanager
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.errors import register_exception_handlers
from app.db.session import create_db_and_tables

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    if not settings.JWT_SECRET:
        logger.warning("JWT_SECRET is not set; authenticated endpoints will refuse every request")
    yield

app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    lifespan=lifespan,
    description="Content API for the recipe blog and its back office"
)

register_exception_handlers(app)

@app.get("/")
def read_root():
    return {"message": f"Welcome to {settings.PROJECT_NAME}. Visit /docs for Swagger UI."}

from app.routers import admin, articles, auth, authors, categories, media, tags

app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(categories.router, prefix="/api/categories", tags=["categories"])
app.include_router(authors.router, prefix="/api/authors", tags=["authors"])
app.include_router(articles.router, prefix="/api/articles", tags=["articles"])
app.include_router(tags.router, prefix="/api/tags", tags=["tags"])
app.include_router(media.router, prefix="/api/media", tags=["media"])
app.include_router(admin.router, prefix="/api/admin", tags=["admin"])
app.include_router(media.images_router, prefix=settings.IMAGES_BASE_PATH.rstrip("/"), tags=["images"])

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
