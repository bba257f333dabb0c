"""
Persistence of per-account template settings in MongoDB (motor).

Records are stored whole; reading them back always goes through
settings.resolve() so stale or partial records are safe to load.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from proforma.assets.pdf.settings import TemplateSettings

logger = logging.getLogger(__name__)


class SettingsStore:
    def __init__(self, collection):
        self.collection = collection

    async def get(self, account_id: str) -> Optional[dict]:
        """Stored settings record for an account, or None"""
        record = await self.collection.find_one({"account_id": account_id}, {"_id": 0})
        if not record:
            return None
        return record.get("settings")

    async def upsert(self, account_id: str, settings: TemplateSettings) -> TemplateSettings:
        """Write the whole settings record, creating it if needed"""
        await self.collection.update_one(
            {"account_id": account_id},
            {"$set": {
                "account_id": account_id,
                "settings": settings.model_dump(),
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }},
            upsert=True,
        )
        logger.info(f"Saved template settings for account {account_id} ({settings.template_style})")
        return settings
