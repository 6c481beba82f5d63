"""
Pytest configuration and fixtures for stepguard tests

This module provides shared fixtures for unit and integration tests.
"""
from datetime import date, datetime
from typing import Generator

import pytest

from stepguard.core.models import ActionContext
from stepguard.observability.logger import DEFAULT_LOGGER_NAME, get_logger
from stepguard.tables import MemoryTableEvaluator, RecordTable


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests that require Spark or Docker containers"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take more than 5 seconds to run"
    )


# =======================
# LOGGING FIXTURES
# =======================

@pytest.fixture
def caplog(caplog):
    """Capture records from the stepguard logger, which does not propagate to root"""
    package_logger = get_logger(DEFAULT_LOGGER_NAME)
    package_logger.addHandler(caplog.handler)
    yield caplog
    package_logger.removeHandler(caplog.handler)


# =======================
# TABLE FIXTURES
# =======================

SMALL_TABLE_COLUMNS = ["date_time", "date", "a", "b", "c", "d", "e", "f"]

SMALL_TABLE_DATA = [
    (datetime(2016, 1, 4, 11, 0), date(2016, 1, 4), 2, "1-bcd-345", 3.0, 3423.29, True, "high"),
    (datetime(2016, 1, 4, 0, 32), date(2016, 1, 4), 3, "5-egh-163", 8.0, 9999.99, True, "low"),
    (datetime(2016, 1, 5, 13, 32), date(2016, 1, 5), 6, "8-kdg-938", 3.0, 2343.23, True, "high"),
    (datetime(2016, 1, 6, 17, 23), date(2016, 1, 6), 2, "5-jdo-903", None, 3892.4, False, "mid"),
    (datetime(2016, 1, 9, 12, 36), date(2016, 1, 9), 8, "3-ldm-038", 7.0, 283.94, True, "low"),
    (datetime(2016, 1, 11, 6, 15), date(2016, 1, 11), 4, "2-dhe-923", 4.0, 3291.03, True, "mid"),
    (datetime(2016, 1, 15, 18, 46), date(2016, 1, 15), 7, "1-knw-093", 3.0, 843.34, True, "high"),
    (datetime(2016, 1, 17, 11, 27), date(2016, 1, 17), 4, "5-boe-639", 2.0, 1035.64, False, "low"),
    (datetime(2016, 1, 20, 4, 30), date(2016, 1, 20), 3, "5-bce-642", 9.0, 837.93, False, "high"),
    (datetime(2016, 1, 20, 4, 30), date(2016, 1, 20), 3, "5-bce-642", 9.0, 837.93, False, "high"),
    (datetime(2016, 1, 26, 20, 7), date(2016, 1, 26), 4, "2-dmx-823", 7.0, 833.98, True, "low"),
    (datetime(2016, 1, 28, 2, 51), date(2016, 1, 28), 2, "7-dmx-010", 8.0, 108.34, False, "low"),
    (datetime(2016, 1, 30, 11, 23), date(2016, 1, 30), 1, "3-dka-303", None, 2230.09, True, "high"),
]


@pytest.fixture
def small_table_rows() -> list[dict]:
    """
    The 13-row example table

    Column c has two missing values; rows 9 and 10 are duplicates.
    """
    return [dict(zip(SMALL_TABLE_COLUMNS, row)) for row in SMALL_TABLE_DATA]


@pytest.fixture
def small_table(small_table_rows) -> RecordTable:
    return RecordTable(small_table_rows, columns=SMALL_TABLE_COLUMNS, name="small_table")


@pytest.fixture
def memory_evaluator() -> MemoryTableEvaluator:
    return MemoryTableEvaluator()


# =======================
# ACTION FIXTURES
# =======================

class RecordingAction:
    """Action that records every context it receives."""

    def __init__(self, name: str = "recording_action"):
        self.__name__ = name
        self.calls: list[ActionContext] = []

    def __call__(self, context: ActionContext) -> None:
        self.calls.append(context)

    @property
    def call_count(self) -> int:
        return len(self.calls)


@pytest.fixture
def recording_action_factory():
    """Factory for named RecordingAction instances"""
    return RecordingAction


# =======================
# SPARK FIXTURES
# =======================

@pytest.fixture(scope="session")
def spark_session() -> Generator:
    """
    Create a Spark session for testing with local mode

    Skips when pyspark or a Java runtime is unavailable.

    Yields:
        SparkSession configured for local testing
    """
    pyspark_sql = pytest.importorskip("pyspark.sql")

    try:
        spark = (
            pyspark_sql.SparkSession.builder
            .appName("stepguard-test")
            .master("local[1]")
            .config("spark.sql.shuffle.partitions", "1")
            .config("spark.ui.enabled", "false")
            .config("spark.sql.session.timeZone", "UTC")
            .getOrCreate()
        )
    except Exception as e:
        pytest.skip(f"Spark session unavailable: {e}")

    spark.sparkContext.setLogLevel("WARN")

    yield spark

    spark.stop()


# =======================
# DATABASE FIXTURES (Testcontainers)
# =======================

@pytest.fixture(scope="session")
def postgres_container() -> Generator:
    """
    Start PostgreSQL container for integration tests

    Skips when testcontainers or Docker are unavailable.

    Yields:
        PostgresContainer instance
    """
    postgres_module = pytest.importorskip("testcontainers.postgres")

    container = postgres_module.PostgresContainer(
        image="postgres:16.2-alpine",
        username="test_stepguard",
        password="test_password",
        dbname="test_stepguard",
    )
    try:
        container.start()
    except Exception as e:
        pytest.skip(f"Docker unavailable for Postgres container: {e}")

    yield container

    container.stop()


@pytest.fixture(scope="session")
def db_pool(postgres_container) -> Generator:
    """
    Open a DatabaseConnectionPool against the test container

    Yields:
        Open DatabaseConnectionPool
    """
    from stepguard.tables.connection import DatabaseConnectionPool

    pool = DatabaseConnectionPool(
        host=postgres_container.get_container_host_ip(),
        port=int(postgres_container.get_exposed_port(5432)),
        database="test_stepguard",
        user="test_stepguard",
        password="test_password",
        statement_timeout_ms=10000,
    )
    pool.open(max_retries=5, retry_delay=1.0)

    yield pool

    pool.close()
