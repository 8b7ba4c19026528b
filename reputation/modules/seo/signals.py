"""Extraction of SEO signals from a fetched HTML page.

Each ``extract_*`` function reads one dimension off a parsed page and scores
it 0-100 with additive point rules.  The functions are pure so they can be
tested against literal HTML.
"""

from typing import Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from reputation.modules.types import (
    BacklinkSignals,
    ContentSignals,
    OnPageSignals,
    SEOBreakdown,
    SocialSignals,
    TechnicalSignals,
)
from reputation.utils.text_processing import (
    calculate_mention_density,
    classify_readability,
    count_words,
)

TITLE_MAX_LENGTH = 60
META_MIN_LENGTH = 120
META_MAX_LENGTH = 160
UNKNOWN_AUTHORITY_SCORE = 50


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def _origin(url: str) -> str:
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}" if parsed.netloc else ""


# ---------------------------------------------------------------------------
# On-page
# ---------------------------------------------------------------------------

def extract_on_page(soup: BeautifulSoup, url: str = "") -> OnPageSignals:
    title_tag = soup.find("title")
    title = title_tag.get_text(strip=True) if title_tag else ""
    meta_tag = soup.find("meta", attrs={"name": "description"})
    meta = (meta_tag.get("content") or "").strip() if meta_tag else ""
    h1_count = len(soup.find_all("h1"))
    h2_count = len(soup.find_all("h2"))
    images_total = len(soup.find_all("img"))
    images_with_alt = len(soup.find_all("img", alt=True))
    alt_ratio = images_with_alt / images_total if images_total else 0.0

    origin = _origin(url)
    internal_links = 0
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"]
        if href.startswith("/") or (origin and href.startswith(origin)):
            internal_links += 1

    score = 0
    if title and len(title) <= TITLE_MAX_LENGTH:
        score += 20
    elif title:
        score += 10
    if META_MIN_LENGTH <= len(meta) <= META_MAX_LENGTH:
        score += 20
    elif meta:
        score += 10
    if h1_count == 1:
        score += 15
    elif h1_count > 0:
        score += 10
    if h2_count > 0:
        score += 10
    if alt_ratio > 0.8:
        score += 15
    elif alt_ratio > 0.5:
        score += 10
    if internal_links > 10:
        score += 20
    elif internal_links > 5:
        score += 10

    if h1_count == 1 and h2_count > 0:
        structure = "Good"
    elif h1_count == 0:
        structure = "Poor"
    else:
        structure = "Fair"

    return OnPageSignals(
        score=min(score, 100),
        title_exists=bool(title),
        title_length=len(title),
        title=title[:TITLE_MAX_LENGTH],
        meta_description_exists=bool(meta),
        meta_description_length=len(meta),
        meta_description=meta[:META_MAX_LENGTH],
        h1_count=h1_count,
        h2_count=h2_count,
        heading_structure=structure,
        images_total=images_total,
        images_with_alt=images_with_alt,
        images_optimized=alt_ratio > 0.8,
        internal_links=internal_links,
    )


# ---------------------------------------------------------------------------
# Technical
# ---------------------------------------------------------------------------

def estimate_page_speed(html: str) -> int:
    """Rough speed estimate from document size (no real measurement)."""
    size = len(html.encode("utf-8"))
    if size < 500_000:
        return 90
    if size < 1_000_000:
        return 75
    return 60


def extract_technical(
    soup: BeautifulSoup, html: str, url: str, has_robots_txt: bool
) -> TechnicalSignals:
    ssl = url.lower().startswith("https://")
    viewport = soup.find("meta", attrs={"name": "viewport"}) is not None
    sitemap = "sitemap" in html.lower()
    page_speed = estimate_page_speed(html)

    score = 0
    if ssl:
        score += 25
    if viewport:
        score += 20
    if sitemap:
        score += 15
    if has_robots_txt:
        score += 10
    if page_speed >= 80:
        score += 30
    elif page_speed >= 60:
        score += 20

    return TechnicalSignals(
        score=min(score, 100),
        ssl_certificate=ssl,
        mobile_friendly=viewport,
        sitemap=sitemap,
        robots_txt=has_robots_txt,
        page_speed=page_speed,
    )


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------

def extract_content(soup: BeautifulSoup, company_name: str) -> ContentSignals:
    body = soup.body or soup
    text = body.get_text(" ")
    words = count_words(text)
    density = calculate_mention_density(text, company_name)["density_pct"]
    readability = classify_readability(text)

    score = 0
    if words >= 300:
        score += 30
    elif words >= 200:
        score += 20
    else:
        score += 10
    if 1 <= density <= 3:
        score += 30
    elif density > 0:
        score += 15
    if readability["label"] == "Good":
        score += 25
    elif readability["label"] == "Fair":
        score += 15
    if readability["sentence_count"] > 10:
        score += 15

    return ContentSignals(
        score=min(score, 100),
        keyword_density=density,
        content_length=words,
        readability=readability["label"],
    )


# ---------------------------------------------------------------------------
# Backlinks & social
# ---------------------------------------------------------------------------

def extract_backlinks(domain_authority: int = 0) -> BacklinkSignals:
    """Backlink stub: no provider is wired in, so authority stays unknown (0)."""
    return BacklinkSignals(
        score=domain_authority or UNKNOWN_AUTHORITY_SCORE,
        count=0,
        quality="Unknown",
        domain_authority=domain_authority,
    )


def _links_to(soup: BeautifulSoup, *hosts: str) -> bool:
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].lower()
        if any(host in href for host in hosts):
            return True
    return False


def extract_social(soup: BeautifulSoup) -> SocialSignals:
    facebook = 100 if _links_to(soup, "facebook.com") else 0
    twitter = 50 if _links_to(soup, "twitter.com", "x.com") else 0
    linkedin = 30 if _links_to(soup, "linkedin.com") else 0
    return SocialSignals(
        score=min(100.0, (facebook + twitter + linkedin) / 10),
        facebook_signal=facebook,
        twitter_signal=twitter,
        linkedin_signal=linkedin,
    )


# ---------------------------------------------------------------------------
# Whole page
# ---------------------------------------------------------------------------

def extract_breakdown(
    html: str,
    url: str,
    company_name: str,
    has_robots_txt: bool = False,
    domain_authority: Optional[int] = None,
) -> SEOBreakdown:
    """Parse *html* once and extract every dimension."""
    soup = parse_html(html)
    return SEOBreakdown(
        on_page=extract_on_page(soup, url),
        technical=extract_technical(soup, html, url, has_robots_txt),
        content=extract_content(soup, company_name),
        backlinks=extract_backlinks(domain_authority or 0),
        social=extract_social(soup),
    )


def default_breakdown() -> SEOBreakdown:
    """Neutral breakdown used when the site is unknown or unreachable."""
    return SEOBreakdown(
        on_page=OnPageSignals(score=50),
        technical=TechnicalSignals(score=50, page_speed=50),
        content=ContentSignals(score=50),
        backlinks=BacklinkSignals(score=50, domain_authority=50),
        social=SocialSignals(score=50.0),
    )
