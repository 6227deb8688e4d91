# agenda/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import LOG_LEVEL
from .db import init_db
from .routers import (
    appointments_routes,
    auth_routes,
    businesses_routes,
    customers_routes,
    employees_routes,
    notifications_routes,
    users_routes,
)

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("Agenda API started")
    yield


app = FastAPI(title="Agenda API", lifespan=lifespan)


@app.get("/health")
def health_check():
    return {"status": "ok"}


app.include_router(auth_routes.router)
app.include_router(users_routes.router)
app.include_router(businesses_routes.router)
app.include_router(employees_routes.router)
app.include_router(customers_routes.router)
app.include_router(appointments_routes.router)
app.include_router(notifications_routes.router)
