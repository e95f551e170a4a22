"""
Database models - import all models here so Alembic can discover them.
"""
from leadsync.models.connections import MetaConnection, GoogleConnection
from leadsync.models.automation import Automation
from leadsync.models.automation_log import AutomationLog

__all__ = [
    "MetaConnection",
    "GoogleConnection",
    "Automation",
    "AutomationLog",
]
