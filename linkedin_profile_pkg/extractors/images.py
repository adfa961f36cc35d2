import logging
from typing import List

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from ..models import AggregatedProfile, ImageCollection

logger = logging.getLogger(__name__)

MEDIA_HOST = "https://media.licdn.com"

_PAGE_IMAGES = """(host) => Array.from(document.querySelectorAll('img'))
    .map((img) => img.src)
    .filter((src) => src && src.startsWith(host))"""


def collect_images(document: AggregatedProfile) -> ImageCollection:
    """Group every image URL the other sections already captured."""
    images = ImageCollection(
        profile_photo=document.profile.profile_image,
        banner_image=document.profile.banner_image,
        company_logos=[e.company_logo for e in document.experience if e.company_logo],
        school_logos=[e.school_logo for e in document.education if e.school_logo],
        certification_logos=[c.logo for c in document.certifications if c.logo],
        post_images=[url for post in document.posts for url in post.images],
        recommendation_photos=[r.photo for r in document.recommendations.received if r.photo],
    )
    images.all_urls = unique_urls(images)
    return images


def unique_urls(images: ImageCollection, extra: List[str] = ()) -> List[str]:
    seen = {}
    for url in (images.profile_photo, images.banner_image):
        if url:
            seen[url] = None
    for group in (
        images.company_logos,
        images.school_logos,
        images.certification_logos,
        images.post_images,
        images.recommendation_photos,
        extra,
    ):
        for url in group:
            if url:
                seen[url] = None
    return list(seen)


async def extract_images(page: Page, document: AggregatedProfile) -> ImageCollection:
    logger.info("Aggregating images...")
    images = collect_images(document)
    try:
        page_images = await page.evaluate(_PAGE_IMAGES, MEDIA_HOST)
    except PlaywrightError as e:
        logger.debug("Page image scan failed: %s", str(e)[:80])
        page_images = []
    images.all_urls = unique_urls(images, page_images or [])
    logger.info("Aggregated %d image URLs", len(images.all_urls))
    return images
