from fastapi import APIRouter, FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from timing_asgi import TimingMiddleware, TimingClient  # type: ignore
from timing_asgi.integrations import StarletteScopeToName  # type: ignore

from saas_admin.core import config
from saas_admin.core.database.engine import init_db
from saas_admin.features.users.routes import router as user_router
from saas_admin.features.organizations.routes import router as organization_router
from saas_admin.features.permissions.routes import router as permission_router
from saas_admin.features.users.dependencies import get_authorization_header
from saas_admin.utils import get_logger


log = get_logger(__name__)
log.info("Initializing server")
app = FastAPI(
    title="SaaS Admin Console",
    description="Admin API for organizations, users, roles and permissions",
    version="0.1.0",
    docs_url="/docs" if config.ENABLE_DOCS else None,
    redoc_url="/redoc" if config.ENABLE_DOCS else None,
    openapi_url="/openapi.json" if config.ENABLE_DOCS else None
)
limiter = Limiter(key_func=get_authorization_header, default_limits=[config.RATE_LIMIT])
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)


class PrintTimings(TimingClient):
    def timing(self, metric_name, timing, tags):
        log.debug(dict(route=metric_name.removeprefix("main.saas_admin.features."), timing=timing, tags=tags))


app.add_middleware(TimingMiddleware, client=PrintTimings(), metric_namer=StarletteScopeToName("main", app))

if config.ENABLE_DOCS:
    log.warning("Docs enabled")
if config.ALLOW_ORIGIN:
    log.warning("Setting allow origin to %s", config.ALLOW_ORIGIN)
    origins = [config.ALLOW_ORIGIN]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    errors = dict()
    for error in exc.errors():
        if "loc" not in error or "msg" not in error:
            continue
        key = error["loc"][-1]
        if key == "__root__":
            key = "root"
        errors[key] = error["msg"]
    log.info("Request validation error %s", errors)
    return JSONResponse(status_code=400, content=jsonable_encoder(errors))


@app.exception_handler(RateLimitExceeded)
def rate_limit_exceeded_handler(_request: Request, _exc: RateLimitExceeded) -> Response:
    return JSONResponse({"error": "You are going too fast"}, status_code=429)


@app.on_event("startup")
async def startup():
    """Initialize database on application startup."""
    log.info("Initializing database...")
    await init_db()
    log.info("Database initialized successfully")


@app.get("/")
async def root():
    """Root endpoint - API health check."""
    return {
        "message": "SaaS Admin Console API",
        "version": "0.1.0",
        "status": "online",
        "docs": "/docs" if config.ENABLE_DOCS else None,
        "authentication": {
            "info": "Admin endpoints require a Bearer JWT whose subject is the user id",
            "protected_endpoints": [
                "/admin/users/*", "/admin/organizations/*",
                "/admin/roles/*", "/admin/permissions/*"
            ],
            "public_endpoints": ["/", "/health"]
        },
        "features": {
            "users": "User management with role-derived and direct permissions",
            "organizations": "Tenant organizations with subscription status",
            "roles": "Roles grouping permissions, assigned to users with scope",
            "permissions": "Permission codes such as users.create"
        }
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


# Include routers
admin_router = APIRouter(prefix="/admin")
admin_router.include_router(user_router, prefix="/users")
admin_router.include_router(organization_router, prefix="/organizations")
# Serves /admin/permissions and /admin/roles
admin_router.include_router(permission_router, tags=["permissions"])
app.include_router(admin_router)
