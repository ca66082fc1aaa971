import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from drinkpos.middleware import RequestIdMiddleware
from drinkpos.db import Base, engine
from drinkpos.config import settings
from drinkpos.errors import POSError
from drinkpos.util.logs import configure_logging
import drinkpos.models  # noqa: F401  (registers tables)

from drinkpos.routers import auth, admin, catalog, members, cart, orders, shift, reports

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(title="DrinkPOS API", version="0.1.0")

@app.on_event("startup")
def init_db():
    Base.metadata.create_all(bind=engine)
    logger.info("Database ready (%s)", engine.url.render_as_string(hide_password=True))

@app.exception_handler(POSError)
async def pos_error_handler(request: Request, exc: POSError):
    level = logging.WARNING if exc.status_code >= 409 else logging.INFO
    logger.log(level, "%s %s rejected: %s (%s)",
               request.method, request.url.path, exc.detail, exc.__class__.__name__)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

# Middlewares
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(admin.router)
app.include_router(catalog.router)
app.include_router(members.router)
app.include_router(cart.router)
app.include_router(orders.router)
app.include_router(shift.router)
app.include_router(reports.router)

@app.get("/healthz")
def healthz():
    return {"ok": True}
