"""
Configuration variables and fixtures for the service layer tests.
"""

import pytest
import pytest_asyncio
import structlog

from grouper.config.settings import Settings
from grouper.service import user as user_service


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def session_manager(server_settings: Settings, database):
    manager = server_settings.async_manager()
    yield manager
    await manager.dispose()


@pytest.fixture(scope="session")
def logger():
    yield structlog.get_logger()


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def user(session_manager, logger):
    async with session_manager.session() as conn:
        async with conn.begin():
            user = await user_service.create(
                user_name="admin",
                email="admin@example.org",
                full_name="Admin User",
                conn=conn,
                log=logger,
            )

            USER_ID = user.user_id

    yield USER_ID

    async with session_manager.session() as conn:
        async with conn.begin():
            await user_service.delete(
                user_name="admin",
                conn=conn,
                log=logger,
            )
