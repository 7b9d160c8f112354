import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fintrack import __version__
from fintrack.config import settings
from fintrack.exceptions import AppError
from fintrack.routers import reports_router

logger = logging.getLogger(__name__)

app = FastAPI(title=f"{settings.product_name} Reports", version=__version__)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Translate domain exceptions raised by services into JSON responses"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(reports_router.router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "version": __version__}
