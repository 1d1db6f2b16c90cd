import pytest_asyncio
from sqlalchemy import text

from socialhub import database


@pytest_asyncio.fixture(autouse=True)
async def _fresh_connection():
    yield
    await database.engine.dispose()


async def test_app_engine_enforces_foreign_keys():
    async with database.engine.connect() as conn:
        enabled = (await conn.exec_driver_sql("PRAGMA foreign_keys")).scalar_one()
    assert enabled == 1


async def test_app_engine_rolls_back_savepoints():
    async with database.engine.begin() as conn:
        await conn.execute(text("CREATE TEMP TABLE scratch (n INTEGER)"))
        await conn.execute(text("INSERT INTO scratch VALUES (1)"))

        nested = await conn.begin_nested()
        await conn.execute(text("INSERT INTO scratch VALUES (2)"))
        await nested.rollback()

        rows = (await conn.execute(text("SELECT n FROM scratch"))).scalars().all()
        await conn.execute(text("DROP TABLE scratch"))

    assert rows == [1]
