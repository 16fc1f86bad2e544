"""
Core configuration. Database-backed tests run once against a SQLite file and
once against a PostgreSQL container; the latter is skipped without Docker.
"""

import pytest
from docker.errors import DockerException
from testcontainers.postgres import PostgresContainer

from grouper.config.settings import Settings


@pytest.fixture(scope="session")
def sqlite_database(tmp_path_factory):
    database_path = tmp_path_factory.mktemp("database") / "grouper.db"
    yield {
        "database_type": "sqlite",
        "database_db": str(database_path),
        "database_echo": False,
    }


@pytest.fixture(scope="session")
def postgres_database():
    container = PostgresContainer()
    try:
        container.start()
    except DockerException as e:
        pytest.skip(f"PostgreSQL container unavailable: {e}")

    yield {
        "database_type": "postgres",
        "database_user": container.username,
        "database_password": container.password,
        "database_port": container.get_exposed_port(container.port),
        "database_host": container.get_container_host_ip(),
        "database_db": container.dbname,
        "database_echo": False,
    }

    container.stop()


@pytest.fixture(scope="session", params=["sqlite", "postgres"])
def database_container(request):
    yield request.getfixturevalue(f"{request.param}_database")


@pytest.fixture(scope="session")
def server_settings(database_container):
    yield Settings(**database_container)


@pytest.fixture(scope="session")
def database(server_settings: Settings):
    manager = server_settings.sync_manager()
    manager.create_all()
    yield
    manager.drop_all()
    manager.engine.dispose()
