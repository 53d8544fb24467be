#!/usr/bin/env python3
"""Setup script for the StayHub API: create the schema and seed a sample listing."""

import asyncio
import logging
import os
import sys
from decimal import Decimal
from pathlib import Path
from uuid import UUID

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

from sqlalchemy import func, select  # noqa: E402

from stayhub.core.database import async_session_factory, close_db, init_db  # noqa: E402
from stayhub.models import Property  # noqa: E402
from stayhub.schemas.auth import Principal, UserRole  # noqa: E402
from stayhub.schemas.property import CreatePropertyRequest  # noqa: E402
from stayhub.services.property_service import PropertyService  # noqa: E402

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Host that owns the seeded listing; override with SAMPLE_HOST_ID
DEFAULT_SAMPLE_HOST_ID = "00000000-0000-4000-8000-000000000001"


async def setup_database():
    """Create all tables, constraints and triggers."""
    logger.info("Setting up database...")
    await init_db()
    logger.info("Database schema created")


async def create_sample_data():
    """Create a sample listing if the catalog is empty."""
    host = Principal(
        user_id=UUID(os.environ.get("SAMPLE_HOST_ID", DEFAULT_SAMPLE_HOST_ID)),
        role=UserRole.HOST
    )

    logger.info("Creating sample data...")

    async with async_session_factory() as db:
        existing = await db.execute(select(func.count(Property.id)))
        if existing.scalar_one() > 0:
            logger.info("Sample data already exists, skipping...")
            return

        property = await PropertyService(db).create_property(
            CreatePropertyRequest(
                title="Cabin by the Lake",
                description="Two bedrooms, wood stove and a private dock",
                city="Bariloche",
                country="Argentina",
                max_guests=4,
                price_per_night=Decimal("100.00")
            ),
            host
        )
        logger.info(f"Sample property {property.id} created for host {host.user_id}")


async def main():
    """Main setup function."""
    logger.info("Starting StayHub API setup...")

    try:
        await setup_database()
        await create_sample_data()
    finally:
        await close_db()

    logger.info("Setup completed successfully!")
    logger.info("You can now start the API server with: cd server && uvicorn stayhub.main:app --reload")


if __name__ == "__main__":
    asyncio.run(main())
