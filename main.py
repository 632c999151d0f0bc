# main.py (full, lifespan-based)
from __future__ import annotations

import logging, uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute
from tortoise.contrib.fastapi import RegisterTortoise

from models import User
from routers import bills, tariffs, usage
from services import config
from services.billing import BillService
from services.tariffs import TariffProvider

logger = logging.getLogger("uvicorn")

# ----- helpers -----
async def _seed_admin():
    if not await User.filter(is_admin=True).exists():
        admin = await User.create(
            id=uuid.uuid4(),
            username=config.ADMIN_USERNAME,
            email=config.ADMIN_EMAIL,
            is_admin=True,
        )
        logger.info(f"[seed] admin user created: {admin.id}")

# ----- lifespan -----
@asynccontextmanager
async def lifespan(app: FastAPI):
    # 1) DB init (connections are closed when the block exits)
    async with RegisterTortoise(
        app,
        db_url=config.DB_URL,
        modules={"models": ["models"]},
        generate_schemas=config.GENERATE_SCHEMAS,
    ):
        # 2) Billing collaborators (one tariff provider shared by every request)
        tariff_provider = TariffProvider(config.TARIFF_NAME)
        app.state.tariffs = tariff_provider
        app.state.billing = BillService(tariff_provider)

        # 3) Seeds
        if config.SEED_ADMIN:
            await _seed_admin()
        await tariff_provider.get()

        yield

# ----- app & routers -----
app = FastAPI(lifespan=lifespan, title="Household Billing API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Range", "X-Total-Count"],
)

app.include_router(tariffs.router)
app.include_router(bills.router)
app.include_router(usage.router)

for route in app.routes:
    if isinstance(route, APIRoute):
        logger.info("%s -> %s", list(route.methods), route.path)
