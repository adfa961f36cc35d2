#!/usr/bin/env python3
"""
LinkedIn Profile Scraper - CLI Standalone Version

Scrapes a full LinkedIn profile (header, contact, experience, education,
certifications, skills, projects, interests, accomplishments, posts and
images) using the persistent browser session in USER_DATA_DIR.

Usage:
    python scraper.py <LINKEDIN_URL> [OPTIONS]
    python scraper.py --login

Example:
    python scraper.py https://www.linkedin.com/in/johndoe/ --fresh
    python scraper.py johndoe --max-posts 5 -o johndoe.json
    python scraper.py --login --headless false
"""

import argparse
import asyncio
import json
import sys

from linkedin_profile_pkg.browser import SessionManager
from linkedin_profile_pkg.cache import ProfileCache
from linkedin_profile_pkg.config import CACHE_TTL, ScraperSettings
from linkedin_profile_pkg.errors import ScraperError
from linkedin_profile_pkg.orchestrator import ProfileScraper
from linkedin_profile_pkg.scraper_logging import setup_logging
from response import validate_linkedin_url


async def run_scrape(settings: ScraperSettings, url: str, fresh: bool, max_posts: int) -> dict:
    session = SessionManager(settings)
    scraper = ProfileScraper(session, ProfileCache(CACHE_TTL), settings)
    try:
        document = await scraper.scrape_profile(url, skip_cache=fresh, max_posts=max_posts)
        return document.model_dump()
    finally:
        await session.close()


async def run_login(settings: ScraperSettings) -> dict:
    session = SessionManager(settings)
    try:
        await session.ensure_authenticated()
        return await session.check_session()
    finally:
        await session.close()


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="LinkedIn Profile Scraper - Scrape complete LinkedIn profiles",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s https://www.linkedin.com/in/johndoe/
  %(prog)s johndoe --fresh --max-posts 5
  %(prog)s --login --headless false
        """
    )

    parser.add_argument(
        "url",
        nargs="?",
        help="LinkedIn profile URL or username (e.g., https://www.linkedin.com/in/username/)"
    )
    parser.add_argument(
        "--login",
        action="store_true",
        help="Only run the login flow and persist the session"
    )
    parser.add_argument(
        "--fresh",
        action="store_true",
        help="Ignore cached results"
    )
    parser.add_argument(
        "--max-posts",
        type=int,
        default=10,
        help="Maximum number of posts to collect (default: 10)"
    )
    parser.add_argument(
        "--headless",
        type=lambda x: x.lower() in ("true", "1", "yes"),
        default=None,
        help="Run browser in headless mode (default: HEADLESS env, else true)"
    )
    parser.add_argument(
        "--output",
        "-o",
        help="Output file path (JSON format). If not specified, prints to stdout"
    )

    args = parser.parse_args()
    setup_logging()

    settings = ScraperSettings.from_env()
    if args.headless is not None:
        settings = settings.model_copy(update={"headless": args.headless})

    try:
        if args.login:
            result = asyncio.run(run_login(settings))
        else:
            url = validate_linkedin_url(args.url)
            if not url:
                print("❌ Error: URL must be a LinkedIn profile URL or username")
                sys.exit(1)
            result = asyncio.run(run_scrape(settings, url, args.fresh, args.max_posts))

        if args.output:
            with open(args.output, "w") as f:
                json.dump(result, f, indent=2, ensure_ascii=False)
            print(f"\n📁 Results saved to: {args.output}")
        else:
            print("\n📊 Scraping Results:")
            print(json.dumps(result, indent=2, ensure_ascii=False))
        sys.exit(0)

    except KeyboardInterrupt:
        print("\n⚠️ Interrupted by user")
        sys.exit(130)
    except ScraperError as e:
        print(f"❌ {e.code}: {e.message}")
        sys.exit(1)


if __name__ == "__main__":
    main()
