"""Environment configuration for the badge award services"""

import logging
import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


@dataclass
class Settings:
    mongo_uri: Optional[str] = None
    db_name: str = "badges"
    events_queue_url: Optional[str] = None
    aws_region: str = "us-east-1"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, require_mongo: bool = True) -> 'Settings':
        """Build settings from environment variables (and a .env file if present)."""
        settings = cls(
            mongo_uri=os.getenv("MONGO_URI"),
            db_name=os.getenv("MONGO_DB_NAME", "badges"),
            events_queue_url=os.getenv("BADGE_EVENTS_QUEUE_URL") or None,
            aws_region=os.getenv("AWS_REGION", "us-east-1"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper()
        )

        if require_mongo and not settings.mongo_uri:
            raise ValueError("Missing required environment variable: MONGO_URI")

        return settings


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
