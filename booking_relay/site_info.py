"""Static site configuration shown to the widget and used in replies."""

import json
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from booking_relay.logging_config import get_logger

logger = get_logger("site_info")


class Service(BaseModel):
    name: str
    price_usd: float
    desc: str


class SiteInfo(BaseModel):
    website: str
    phone: str
    email: str
    booking: str
    services: list[Service] = []


DEFAULT_SITE_INFO = SiteInfo(
    website="https://example.com",
    phone="+1-555-123-4567",
    email="owner@example.com",
    booking="https://example.com/book",
    services=[
        Service(name="Basic Website Package", price_usd=49, desc="Landing page + contact form"),
        Service(name="Business Website", price_usd=199, desc="5 pages + CMS, SEO basics"),
        Service(name="E-commerce Starter", price_usd=349, desc="Shop + payments + 10 products"),
        Service(name="Monthly Maintenance", price_usd=25, desc="Updates + backups, per month"),
        Service(name="SEO Booster (3 months)", price_usd=90, desc="Local SEO + monthly report"),
    ],
)


def load_site_info(path: Optional[str] = None) -> SiteInfo:
    """Load site info from a JSON file, falling back to the built-in defaults."""
    if not path:
        return DEFAULT_SITE_INFO

    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
        return SiteInfo(**raw)
    except (OSError, ValueError) as exc:
        logger.error(
            "Failed to load site info, using defaults",
            extra={"context": {"path": path, "error": str(exc)}},
        )
        return DEFAULT_SITE_INFO
