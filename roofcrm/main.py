import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from roofcrm.api.endpoints import leads as leads_api
from roofcrm.api.endpoints import commissions as commissions_api
from roofcrm.api.endpoints import users as users_api
from roofcrm.core.config import LOG_LEVEL, LOG_FORMAT
from roofcrm.db.session import init_db

logging.basicConfig(level=getattr(logging, LOG_LEVEL.upper(), logging.INFO), format=LOG_FORMAT)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting RoofCRM commissions service...")
    init_db()
    yield
    logger.info("RoofCRM commissions service stopped.")


app = FastAPI(title="RoofCRM Commissions API", version="0.1.0", lifespan=lifespan)

# Include API routers
app.include_router(leads_api.router, prefix="/api/v1/leads", tags=["Leads"])
app.include_router(commissions_api.router, prefix="/api/v1/commissions", tags=["Commissions"])
app.include_router(users_api.router, prefix="/api/v1/users", tags=["Users"])


@app.get("/ping", tags=["Health Check"])
async def ping():
    return {"message": "pong"}
