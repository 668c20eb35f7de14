import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from . import database, models
from .config import settings
from .errors import ServiceError
from .routers import admin, auth, authoring, courses, enroll, learning, promotions, reviews, users
from .security import hash_password

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "General"

app = FastAPI(title=settings.APP_NAME)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message, "code": exc.code})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    details = [{"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in exc.errors()]
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": details})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error", "details": str(exc)})


for module in (auth, users, courses, enroll, learning, authoring, reviews, promotions, admin):
    app.include_router(module.router)


def seed(db) -> None:
    """Create the admin account and a default category on an empty database."""
    if not db.query(models.User).filter(models.User.role == models.Role.ADMIN.value).first():
        db.add(models.User(
            email=settings.ADMIN_EMAIL,
            username=settings.ADMIN_USERNAME,
            hashed_password=hash_password(settings.ADMIN_PASSWORD),
            role=models.Role.ADMIN.value,
            is_verified=True,
        ))
        logger.info("Seeded admin account %s", settings.ADMIN_USERNAME)

    if db.query(models.Category).count() == 0:
        db.add(models.Category(name=DEFAULT_CATEGORY))
        logger.info("Seeded default category %s", DEFAULT_CATEGORY)
    db.commit()


@app.on_event("startup")
def startup_event():
    models.Base.metadata.create_all(bind=database.engine)
    db = database.SessionLocal()
    try:
        seed(db)
    finally:
        db.close()


@app.get("/")
def root():
    return {"message": f"{settings.APP_NAME} is running"}
