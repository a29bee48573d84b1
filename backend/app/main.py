import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from app.api import auth, users, jobs, admin_jobs, applications, admin_applications
from app.core.config import settings
from app.core.errors import AppError, ValidationError, Internal

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

# HTTP статус -> машиночитаемый тип ошибки для ответов HTTPException
HTTP_ERROR_KINDS = {
    400: "validation_error",
    401: "unauthenticated",
    403: "forbidden",
    404: "not_found",
    409: "conflict",
    429: "rate_limited",
}

app = FastAPI(
    title="Job Portal API",
    description="API портала вакансий: заявки, статусы, история и заметки",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS_LIST,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "detail": exc.message}
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": HTTP_ERROR_KINDS.get(exc.status_code, "internal"), "detail": exc.detail},
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # Ошибки разбора тела и параметров приводим к тому же виду, что и ValidationError сервисов
    problems = [
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=ValidationError.status_code,
        content={"error": ValidationError.kind, "detail": "; ".join(problems)}
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"{request.method} {request.url.path} failed with unhandled error", exc_info=exc)
    return JSONResponse(
        status_code=Internal.status_code,
        content={"error": Internal.kind, "detail": "Internal server error"}
    )


# Подключение роутеров
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(jobs.router, prefix="/api/jobs", tags=["jobs"])
app.include_router(applications.router, prefix="/api/applications", tags=["applications"])
app.include_router(admin_jobs.router, prefix="/api/admin/jobs", tags=["admin"])
app.include_router(admin_applications.router, prefix="/api/admin/applications", tags=["admin"])


@app.get("/")
async def root():
    return {"message": "Job Portal API", "version": "1.0.0"}


@app.get("/health")
async def health():
    return {"status": "healthy"}
