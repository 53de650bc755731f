from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import os

from core.config import APP_NAME, APP_VERSION, DIAGNOSTIC_LOG_CAPACITY, logger  # type: ignore
from core.diagnostics import DiagnosticBuffer

# Routers
from routers import auth, shop, products, storage, analyze, orders, logs  # type: ignore

app = FastAPI(title=f"{APP_NAME} API", version=APP_VERSION)

# Rolling diagnostic log shown in the owner UI
app.state.diagnostics = DiagnosticBuffer(capacity=DIAGNOSTIC_LOG_CAPACITY)
app.state.diagnostics.attach(logger)

# ---- CORS setup ----
# Prefer ALLOWED_ORIGINS, fall back to FRONTEND_ORIGIN, then local dev servers
_default_origins = ",".join([
    "http://localhost:3000",
    "http://localhost:5173",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
])
_origins_env = os.getenv("ALLOWED_ORIGINS") or os.getenv("FRONTEND_ORIGIN") or _default_origins
ALLOWED_ORIGINS = [o.strip() for o in _origins_env.split(",") if o.strip()]
# Optional regex for preview deployments. Never accept a match-anything pattern.
_origin_regex_raw = os.getenv("ALLOWED_ORIGINS_REGEX") or ""
_origin_regex_env = _origin_regex_raw if (_origin_regex_raw and _origin_regex_raw.strip() not in (".*", "^.*$", ".+")) else None
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_origin_regex=_origin_regex_env,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Security headers ---
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
    if request.url.scheme == "https":
        response.headers.setdefault("Strict-Transport-Security", "max-age=63072000; includeSubDomains")
    return response


# --- Error envelope: every failure is {"error": code, "details": ...} ---
_STATUS_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    429: "rate_limited",
}


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    code = _STATUS_CODES.get(exc.status_code, "server_error" if exc.status_code >= 500 else "error")
    return JSONResponse({"error": code, "details": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))


def jsonable_errors(exc: RequestValidationError) -> list:
    # Error contexts may carry exception objects; keep only the serializable parts
    return [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg", ""), "type": e.get("type", "")}
        for e in exc.errors()
    ]


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Invalid request to {request.url.path}: {exc.errors()}")
    return JSONResponse({"error": "invalid_request", "details": jsonable_errors(exc)}, status_code=400)


app.include_router(auth.router)
app.include_router(shop.router)
app.include_router(products.router)
app.include_router(storage.router)
app.include_router(analyze.router)
app.include_router(orders.router)
app.include_router(logs.router)


@app.on_event("startup")
async def _init_schema():
    try:
        from core.database import init_db
        init_db()
    except Exception as _ex:
        logger.warning(f"init_db failed: {_ex}")
    logger.info(f"{APP_NAME} {APP_VERSION} listo")


@app.get("/")
async def root():
    return {"status": "ok", "message": f"{APP_NAME} API", "version": APP_VERSION}


@app.get("/api/version")
async def version():
    return {"version": APP_VERSION}
