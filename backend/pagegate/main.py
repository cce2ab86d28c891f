import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from .shared.config import settings
from .shared.errors import RandomnessUnavailable, StorageUnavailable
from .shared.log import configure_logging
from .auth.router import router as auth_router
from .locks.router import router as locks_router

configure_logging(settings.LOG_LEVEL)
log = logging.getLogger(__name__)

app = FastAPI(
    title="PageGate API", version="0.1.0", openapi_url=f"{settings.API_PREFIX}/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StorageUnavailable)
def storage_unavailable(request: Request, exc: StorageUnavailable):
    return JSONResponse(status_code=503, content={"detail": "lock storage unavailable"})


@app.exception_handler(RandomnessUnavailable)
def randomness_unavailable(request: Request, exc: RandomnessUnavailable):
    log.critical("secure random source failed on %s", request.url.path)
    return JSONResponse(status_code=500, content={"detail": "internal error"})


@app.get(f"{settings.API_PREFIX}/healthz")
def healthz():
    return {"status": "ok", "app": "PageGate"}


app.include_router(auth_router)
app.include_router(locks_router)
