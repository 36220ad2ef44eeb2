import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import config
from . import models  # noqa: F401 - registers tables with Base
from .database import Base, engine
from .domain.appointments import router as appointments_router
from .domain.customers import router as customers_router
from .routes.cal_webhooks import router as cal_webhooks_router
from .routes.cron import router as cron_router
from .routes.stripe_webhooks import router as stripe_webhooks_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"🚀 {app.title} starting")
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
    except Exception as e:
        # Concurrent workers race on CREATE TABLE; the loser sees a duplicate error
        if "already exists" not in str(e) and "duplicate key" not in str(e):
            logger.error(f"❌ Schema creation failed: {e}")
    else:
        logger.info("✅ Schema ready")

    yield
    logger.info(f"👋 {app.title} stopping")


app = FastAPI(title="Ink Studio API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    The cron caller expects {"error": ...} bodies; everything else keeps
    FastAPI's default 422 shape
    """
    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    if request.url.path.startswith("/api/cron"):
        return JSONResponse(status_code=400, content={"error": "Invalid request"})
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})


ALLOWED_ORIGINS = [origin.strip() for origin in config.FRONTEND_URL.split(",") if origin.strip()]
logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Routes
app.include_router(cron_router)
app.include_router(appointments_router)
app.include_router(customers_router)
app.include_router(cal_webhooks_router)
app.include_router(stripe_webhooks_router)


@app.get("/health")
def health():
    return {"status": "healthy"}
