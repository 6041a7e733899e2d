from typing import Optional

from pydantic import Field

from inkwell.models.base import CamelModel


class CustomLink(CamelModel):
    name: str = ""
    url: str = ""


class SocialLinks(CamelModel):
    twitter: str = ""
    instagram: str = ""
    tiktok: str = ""
    custom: CustomLink = Field(default_factory=CustomLink)


class SiteSettings(CamelModel):
    """Process-wide site appearance record. Defaults apply when nothing is saved."""

    title: str = "Inkwell Blog"
    primary_color: str = "#0d6efd"
    background_color: str = "#ffffff"
    banner_image: str = ""
    links: SocialLinks = Field(default_factory=SocialLinks)


class CustomLinkUpdate(CamelModel):
    name: Optional[str] = None
    url: Optional[str] = None


class SocialLinksUpdate(CamelModel):
    twitter: Optional[str] = None
    instagram: Optional[str] = None
    tiktok: Optional[str] = None
    custom: Optional[CustomLinkUpdate] = None


class SiteSettingsUpdate(CamelModel):
    title: Optional[str] = None
    primary_color: Optional[str] = None
    background_color: Optional[str] = None
    banner_image: Optional[str] = None
    links: Optional[SocialLinksUpdate] = None
