import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import models  # noqa: F401 - registers tables on Base
from .config import ALLOWED_ORIGINS, DATABASE_URL, NOTIFICATION_QUEUE
from .database import Base, create_db_engine, create_session_factory
from .domain.engagement.router import router as engagement_router
from .domain.notifications.channels import CredentialCipher, EmailChannel, SmsChannel
from .domain.notifications.dispatcher import NotificationDispatcher
from .domain.notifications.router import router as notifications_router
from .domain.scheduling.router import router as scheduling_router
from .domain.workspaces.router import router as workspaces_router
from .exceptions import FrontdeskError

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
    logger.info("Application starting up...")
    engine = create_db_engine(DATABASE_URL)
    try:
        Base.metadata.create_all(bind=engine, checkfirst=True)
        logger.info("Database tables created successfully")
    except Exception as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")

    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)

    cipher = CredentialCipher()
    app.state.dispatcher = NotificationDispatcher(
        app.state.session_factory,
        email_channel=EmailChannel(cipher=cipher),
        sms_channel=SmsChannel(cipher=cipher),
    )

    app.state.arq_pool = None
    if NOTIFICATION_QUEUE == "arq":
        from arq import create_pool

        from .worker import get_redis_settings

        try:
            app.state.arq_pool = await create_pool(get_redis_settings())
            logger.info("Redis connection established - notifications go to the arq worker")
        except Exception as e:
            logger.warning(f"Redis connection failed - notifications will run in-process: {e}")

    yield

    logger.info("Application shutting down...")
    if app.state.arq_pool is not None:
        await app.state.arq_pool.close()
    engine.dispose()


app = FastAPI(title="Frontdesk API", version="1.0.0", lifespan=lifespan)


@app.exception_handler(FrontdeskError)
async def frontdesk_exception_handler(request: Request, exc: FrontdeskError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} - {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message, "errors": exc.errors},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Convert 422 validation errors from HTTPBearer to 401 authentication errors
    when the issue is with the Authorization header
    """
    for error in exc.errors():
        if error.get("loc") and "authorization" in str(error.get("loc")).lower():
            logger.warning(
                f"Authentication failed for {request.url.path}: Missing or invalid Authorization header"
            )
            return JSONResponse(
                status_code=401,
                content={"detail": "Not authenticated. Please provide a valid Bearer token in the Authorization header."},
            )

    logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "message": "Validation failed",
            "errors": [f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors()],
        },
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)

# Routes
app.include_router(scheduling_router)
app.include_router(engagement_router)
app.include_router(workspaces_router)
app.include_router(notifications_router)


@app.get("/")
def root():
    return {"message": "Frontdesk API is running"}


@app.get("/health")
def health():
    return {"status": "healthy"}
