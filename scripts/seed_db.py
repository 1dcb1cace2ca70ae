#!/usr/bin/env python
"""
Seed the development database with a few customers.

Creates missing tables, then inserts the template's sample customers for the
default tenant, skipping phones that already exist.

Usage:
    python scripts/seed_db.py [tenant_id]
"""
import asyncio
import sys
from pathlib import Path

# Add parent directory to path to allow importing app
sys.path.append(str(Path(__file__).parent.parent))

from app.core.config import settings
from app.db.repositories.customers import CustomerRepository
from app.db.session import close_database_connections, create_tables, get_repository_context
from app.services.imports.template import TEMPLATE_HEADERS, TEMPLATE_ROWS
from app.services.imports.mapping import auto_map
from app.services.imports.normalizer import normalize_row


async def seed(tenant_id: str) -> None:
    print(f"🗄️ Ensuring tables exist on {settings.DATABASE_URL}")
    await create_tables()

    mapping = auto_map(TEMPLATE_HEADERS)
    async with get_repository_context(CustomerRepository) as repo:
        for offset, cells in enumerate(TEMPLATE_ROWS):
            row = normalize_row(cells, mapping, offset + 2)
            if await repo.get_by_phone(row.phone, tenant_id):
                print(f"⏭️  {row.name} ({row.phone}) already exists")
                continue
            await repo.create_customer({
                **row.to_record_fields(),
                "tenant_id": tenant_id,
                "created_by": "seed",
            })
            print(f"👤 Created {row.name} ({row.phone})")

    await close_database_connections()
    print("✅ Seeding complete")


if __name__ == "__main__":
    asyncio.run(seed(sys.argv[1] if len(sys.argv) > 1 else settings.DEFAULT_TENANT_ID))
