"""
Alembic Environment - GiftShop
================================
The database URL comes from config.settings, never from alembic.ini.
SQLite runs in batch mode so ALTER TABLE migrations work there too.
"""

import sys
import os
from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.settings import DATABASE_URL
from config.database import Base, IS_SQLITE

# Models must be imported so their tables are on Base.metadata
from modules.order.models import Order  # noqa: F401
from modules.coupon.models import Coupon, CouponUsage  # noqa: F401

config = context.config
config.set_main_option("sqlalchemy.url", DATABASE_URL)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

MIGRATION_OPTIONS = {
    "target_metadata": Base.metadata,
    "compare_type": True,
    "render_as_batch": IS_SQLITE,
}


def run_offline():
    """Emit SQL to stdout (alembic upgrade --sql)."""
    context.configure(
        url=DATABASE_URL,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **MIGRATION_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_online():
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, **MIGRATION_OPTIONS)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
