# app/core/site.py

from dataclasses import dataclass

from app.core.config import (
    PUBLIC_BASE_URL,
    SITE_NAME,
    SITE_CONTACT_EMAIL,
    SITE_CONTACT_PHONE,
)


@dataclass(frozen=True)
class SiteSettings:
    """Public identity rendered into customer emails, links and printouts."""

    base_url: str
    name: str
    contact_email: str = ""
    contact_phone: str = ""

    def quote_link(self, token: str) -> str:
        return f"{self.base_url}/quote/{token}"

    def artwork_link(self, token: str) -> str:
        return f"{self.base_url}/artwork/{token}"


def get_site_settings() -> SiteSettings:
    return SiteSettings(
        base_url=PUBLIC_BASE_URL,
        name=SITE_NAME,
        contact_email=SITE_CONTACT_EMAIL,
        contact_phone=SITE_CONTACT_PHONE,
    )
