import uuid
from fastapi import FastAPI, Request
from storefront.version import VERSION
from storefront.api import orders, registrations
from storefront.core.logging import add_context, clear_context, configure_logging, get_logger
from storefront.core.metrics import instrument

configure_logging()
logger = get_logger("storefront")

app = FastAPI(title="Storefront Service", version=VERSION)

# Instrument the app before the routers are added
instrument(app, endpoint="/storefront/metrics")

@app.middleware("http")
async def bind_request_context(request: Request, call_next):
    clear_context()
    add_context(request_id=request.headers.get("X-Request-ID") or uuid.uuid4().hex, path=request.url.path)
    return await call_next(request)

# Health endpoints
@app.get("/health")
def health():
    return {"status": "ok"}

@app.get("/v1/_info")
def info():
    return {"service": "storefront", "version": VERSION}

@app.on_event("startup")
async def startup_event():
    for route in app.routes:
        if hasattr(route, "methods") and hasattr(route, "path"):
            logger.debug("route_registered", methods=sorted(route.methods), path=route.path)

app.include_router(orders.router, prefix="/v1", tags=["orders"])
app.include_router(orders.admin_router, prefix="/v1", tags=["admin-orders"])
app.include_router(registrations.router, prefix="/v1", tags=["events"])
app.include_router(registrations.admin_router, prefix="/v1", tags=["admin-events"])
