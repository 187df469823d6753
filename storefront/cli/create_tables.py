# storefront/cli/create_tables.py
import asyncio
import click
from sqlalchemy.ext.asyncio import create_async_engine
from storefront.database import Base

# Registers every table on Base.metadata
from storefront import models  # noqa: F401


@click.command("create-tables")
@click.option("--echo/--no-echo", default=False, help="Echo the emitted SQL")
def create_tables(echo):
    """Create all database tables directly using SQLAlchemy"""
    from storefront.core.config import get_settings
    settings = get_settings()

    async def _create_tables():
        engine = create_async_engine(settings.DATABASE_URL, echo=echo)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        await engine.dispose()
        click.echo(f"Created tables: {', '.join(sorted(Base.metadata.tables))}")

    asyncio.run(_create_tables())


if __name__ == "__main__":
    create_tables()
