import logging
from typing import Dict, List

from playwright.async_api import Page

from ..config import ScraperSettings
from ..extraction import CERTIFICATION_CLASSIFIERS, classify_lines, dedupe_title_org, item_lines
from ..models import CertificationEntry
from ..selectors import SectionSelectors
from .common import read_section, snapshot_if_empty

logger = logging.getLogger(__name__)

SECTION = SectionSelectors(
    title="Licenses & certifications",
    sdui="[data-view-name='profile-card-licenses-and-certifications']",
    legacy="#licenses_and_certifications",
)


def _split_dots(lines: List[str]) -> List[str]:
    # "Issued Jan 2021 · Expires Jan 2024" carries two fields on one line
    out: List[str] = []
    for line in lines:
        out.extend(part.strip() for part in line.split(" · ") if part.strip())
    return out


def parse_certification_item(lines: List[str], logo: str | None = None, link: str | None = None) -> CertificationEntry | None:
    """Name and issuer by position; dates and credential id by classifier.

    Classifier priority is issued > credential id > expiration > bare year,
    independent of the order the remaining lines arrive in.
    """
    if not lines:
        return None

    entry = CertificationEntry(name=lines[0], logo=logo)
    rest = _split_dots(lines[1:])
    if rest and not any(c.match(rest[0]) for c in CERTIFICATION_CLASSIFIERS[:3]):
        entry.issuing_organization = rest[0]
        rest = rest[1:]

    fields, _ = classify_lines(rest, CERTIFICATION_CLASSIFIERS)
    entry.issue_date = fields.get("issue_date")
    entry.credential_id = fields.get("credential_id")
    entry.expiration_date = fields.get("expiration_date")
    entry.issuing_organization = dedupe_title_org(entry.name, entry.issuing_organization)
    if link and ("credential" in link.lower() or "verify" in link.lower() or "linkedin.com" not in link):
        entry.credential_url = link
    return entry


def parse_certifications(items: List[Dict]) -> List[CertificationEntry]:
    results: List[CertificationEntry] = []
    seen = set()
    for item in items:
        entry = parse_certification_item(item_lines(item, SECTION.title), item.get("img"), item.get("link"))
        if entry is None or not entry.name or entry.name in seen:
            continue
        seen.add(entry.name)
        results.append(entry)
    return results


async def extract_certifications(page: Page, settings: ScraperSettings) -> List[CertificationEntry]:
    logger.info("Extracting certifications...")
    items, strat = await read_section(page, SECTION, "certifications", settings)
    certifications = parse_certifications(items)
    logger.info("Extracted %d certifications (%s)", len(certifications), strat)
    await snapshot_if_empty(page, "certifications", certifications, settings)
    return certifications
