import asyncio
import os

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["PAYMENT_PROVIDER"] = "mock"
os.environ["RATE_LIMIT_PER_MINUTE"] = "10000"
os.environ["PAYMENT_RATE_LIMIT_PER_MINUTE"] = "10000"

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from factories import create_schema, make_engine
from marketplace.modules.payments.gateway import MockPaymentGateway

@pytest.fixture
def run_db():
    """Runs ``scenario(session)`` against a fresh in-memory database."""
    def runner(scenario):
        async def main():
            engine = make_engine()
            await create_schema(engine)
            factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
            try:
                async with factory() as session:
                    return await scenario(session)
            finally:
                await engine.dispose()
        return asyncio.run(main())
    return runner

@pytest.fixture
def gateway() -> MockPaymentGateway:
    return MockPaymentGateway()

@pytest.fixture
def run_db_file(tmp_path):
    """
    Runs ``scenario(session_factory)`` against a file-backed database, so
    sessions opened from the factory use their own connections and can
    interleave.
    """
    def runner(scenario):
        async def main():
            engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'marketplace.db'}")
            await create_schema(engine)
            factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
            try:
                return await scenario(factory)
            finally:
                await engine.dispose()
        return asyncio.run(main())
    return runner
