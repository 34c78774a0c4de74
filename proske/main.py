import asyncio
import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from proske.config import settings
from proske.core.rate_limit import limiter
from proske.modules.auth import routes as auth_routes
from proske.modules.roles import routes as roles_routes
from proske.modules.profiles import routes as profiles_routes
from proske.modules.communities import routes as communities_routes
from proske.modules.groups import routes as groups_routes
from proske.modules.messages import routes as messages_routes
from proske.modules.courses import routes as courses_routes
from proske.modules.events import routes as events_routes
from proske.modules.tasks import routes as tasks_routes
from proske.modules.plans import routes as plans_routes
from proske.modules.payments import routes as payments_routes
from proske.modules.crm import routes as crm_routes
from proske.modules.notifications import routes as notifications_routes
from proske.modules.interviews import routes as interviews_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    redirect_slashes=False,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Surface the first violated field's message as the detail"""
    errors = exc.errors()
    first = errors[0] if errors else {}
    message = str(first.get("msg", "Invalid request")).removeprefix("Value error, ")
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    detail = f"{field}: {message}" if field else message
    return JSONResponse(
        status_code=422,
        content={"detail": detail, "errors": jsonable_errors(errors)}
    )


def jsonable_errors(errors) -> list:
    return [
        {"loc": list(e.get("loc", ())), "msg": str(e.get("msg", "")), "type": e.get("type")}
        for e in errors
    ]


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
    return JSONResponse(status_code=500, content={"detail": str(exc)})


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"X-XSS-Protection", b"1; mode=block"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include module routes
app.include_router(auth_routes.router, prefix="/api/v1")
app.include_router(roles_routes.router, prefix="/api/v1")
app.include_router(profiles_routes.router, prefix="/api/v1")
app.include_router(communities_routes.router, prefix="/api/v1")
app.include_router(communities_routes.invites_router, prefix="/api/v1")
app.include_router(communities_routes.functions_router, prefix="/api/v1")
app.include_router(groups_routes.router, prefix="/api/v1")
app.include_router(groups_routes.community_router, prefix="/api/v1")
app.include_router(messages_routes.router, prefix="/api/v1")
app.include_router(courses_routes.router, prefix="/api/v1")
app.include_router(courses_routes.community_router, prefix="/api/v1")
app.include_router(courses_routes.modules_router, prefix="/api/v1")
app.include_router(courses_routes.lessons_router, prefix="/api/v1")
app.include_router(events_routes.router, prefix="/api/v1")
app.include_router(events_routes.community_router, prefix="/api/v1")
app.include_router(events_routes.studies_router, prefix="/api/v1")
app.include_router(events_routes.functions_router, prefix="/api/v1")
app.include_router(tasks_routes.router, prefix="/api/v1")
app.include_router(tasks_routes.community_router, prefix="/api/v1")
app.include_router(tasks_routes.assigned_router, prefix="/api/v1")
app.include_router(plans_routes.router, prefix="/api/v1")
app.include_router(plans_routes.subscriptions_router, prefix="/api/v1")
app.include_router(payments_routes.router, prefix="/api/v1")
app.include_router(payments_routes.financial_router, prefix="/api/v1")
app.include_router(crm_routes.router, prefix="/api/v1")
app.include_router(notifications_routes.router, prefix="/api/v1")
app.include_router(interviews_routes.router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    logger.info("Application startup")

    if settings.study_scheduler_enabled:
        from proske.modules.events.study_scheduler import study_scheduler_loop
        asyncio.create_task(study_scheduler_loop())
        logger.info(
            f"Study scheduler started - will create scheduled studies every "
            f"{settings.study_scheduler_interval_seconds} seconds"
        )


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Application shutdown")


@app.get("/")
async def root():
    return {"message": "Welcome to proske-backend", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready():
    """Readiness probe"""
    return {"status": "ready"}
