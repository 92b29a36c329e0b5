from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dashboard_auth.api import router as auth_router
from dashboard_auth.api import users_router
from dashboard_auth.config import settings
from dashboard_auth.errors import StorageError
from dashboard_auth.logs import AuthLog

auth_log = AuthLog.from_settings(settings)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    auth_log.close()


app = FastAPI(title="Dashboard Auth", version="0.1.0", lifespan=lifespan)
app.state.auth_log = auth_log

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    auth_log.logger.error("storage failure on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": {"code": "STORAGE_ERROR", "message": "Session storage is unavailable"}},
    )


@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(auth_router)
app.include_router(users_router)
