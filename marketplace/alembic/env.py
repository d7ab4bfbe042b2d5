import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy.ext.asyncio import create_async_engine

from marketplace.core.config import settings
from marketplace.core.db import Base
from marketplace.modules.auth import models as auth_models  # noqa: F401
from marketplace.modules.creators import models as creators_models  # noqa: F401
from marketplace.modules.cms import models as cms_models  # noqa: F401
from marketplace.modules.sales import models as sales_models  # noqa: F401
from marketplace.modules.subscriptions import models as subscriptions_models  # noqa: F401
from marketplace.modules.payouts import models as payouts_models  # noqa: F401
from marketplace.modules.ledger import models as ledger_models  # noqa: F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata

def run_migrations_offline() -> None:
    context.configure(
        url=settings.async_database_url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()

def do_run_migrations(connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata)
    with context.begin_transaction():
        context.run_migrations()

async def run_migrations_online() -> None:
    connectable = create_async_engine(settings.async_database_url)
    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await connectable.dispose()

if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
