"""
Import all models here to ensure they are registered with SQLAlchemy.
"""
# Import Base
from app.models.base import Base

# Import all models
from app.models.customer import Customer
from app.models.import_job import ImportJob
from app.models.activity_log import ActivityLog

# This allows table creation and migrations to discover all models
