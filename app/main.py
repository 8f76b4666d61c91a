from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from app.config import LOG_LEVEL

# Configure base logging
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger("app")

from app import models  # noqa: F401
from app.database import engine, Base, SessionLocal
from app.exceptions import ConfigurationError, ConsistencyError, DomainException
from app.init_db import init_db
from app.routers import (
    admin,
    auth,
    bookings,
    courts,
    payments,
    pricing_rules,
    settings,
    wallet,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create database tables
    Base.metadata.create_all(bind=engine)

    logger.info("Inicializando base de datos...")
    db = SessionLocal()
    try:
        init_db(db)
    finally:
        db.close()
    yield


app = FastAPI(
    title="Courtside API",
    description="API for court bookings, payments and wallet management",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, replace with specific origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/auth", tags=["authentication"])
app.include_router(courts.router, prefix="/courts", tags=["courts"])
app.include_router(
    pricing_rules.router, prefix="/pricing-rules", tags=["pricing-rules"]
)
app.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
app.include_router(payments.router, prefix="/payments", tags=["payments"])
app.include_router(wallet.router, prefix="/wallet", tags=["wallet"])
app.include_router(admin.router, prefix="/admin", tags=["admin"])
app.include_router(settings.router, prefix="/settings", tags=["settings"])


@app.get("/")
def read_root():
    return {"message": "Welcome to Courtside API"}


@app.exception_handler(DomainException)
async def domain_exception_handler(request: Request, exc: DomainException):
    if isinstance(exc, (ConfigurationError, ConsistencyError)):
        logger.error(
            "Domain error | path=%s | code=%s | %s | details=%s",
            request.url.path,
            exc.code,
            exc.message,
            exc.details,
        )
    http_exc = exc.to_http_exception()
    return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})


# Global unhandled exception handler -> logs ERROR
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(
        "Unhandled error | path=%s | method=%s | client=%s",
        request.url.path,
        request.method,
        request.client.host if request.client else "unknown",
    )
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=5009, reload=True)
