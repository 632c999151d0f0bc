import asyncio
import copy
import os
import uuid

import pytest
from tortoise import Tortoise

os.environ.setdefault("DB_URL", "sqlite://:memory:")
os.environ.setdefault("SEED_ADMIN", "0")

from models import Household, User  # noqa: E402
from schemas import TariffData  # noqa: E402
from services.tariffs import DEFAULT_TARIFF  # noqa: E402


def run_db(scenario):
    """Run an async scenario against a fresh in-memory database."""
    async def _runner():
        await Tortoise.init(db_url="sqlite://:memory:", modules={"models": ["models"]})
        await Tortoise.generate_schemas()
        try:
            return await scenario()
        finally:
            await Tortoise.close_connections()
    return asyncio.run(_runner())


@pytest.fixture
def db():
    return run_db


@pytest.fixture
def tariff() -> TariffData:
    return TariffData.model_validate(copy.deepcopy(DEFAULT_TARIFF))


async def make_household(name: str = "Home", is_admin: bool = False) -> Household:
    tag = uuid.uuid4().hex[:8]
    owner = await User.create(username=f"user-{tag}", email=f"{tag}@example.com", is_admin=is_admin)
    return await Household.create(owner=owner, name=name, city="Colombo", occupants=3)
