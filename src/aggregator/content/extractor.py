"""
Article body extraction from raw HTML.

Tries source-specific CSS selectors first, then trafilatura, then a
readability-style scoring heuristic. Extracted HTML is cleaned of navigation,
ads and other boilerplate before it is turned into text.
"""

import html as html_lib
import json
import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

import trafilatura
from bs4 import BeautifulSoup, Tag
from soupsieve import SelectorSyntaxError

logger = logging.getLogger(__name__)

# Elements that are never part of an article body
EXCLUDE_SELECTORS = (
    'nav', 'header', 'footer', 'aside',
    "[role='navigation']", "[role='complementary']", "[role='banner']", "[role='contentinfo']",
    '.ad', '.ads', '.advertisement', '.advert',
    "[class^='ad-']", "[class*=' ad-']", "[class^='ads-']", "[class*=' ads-']",
    "[id^='ad-']", "[id^='ads-']",
    '.social', '.social-share', '.share-buttons', '.sharing',
    '.comments', '#comments', '.comment-section',
    '.related', '.related-posts', '.recommended', '.suggestions',
    'script', 'style', 'noscript', 'iframe',
    'form',
    '[hidden]', "[aria-hidden='true']", '.hidden', '.visually-hidden',
)

# Selectors that usually wrap the main content
CONTENT_SELECTORS = (
    'article', 'main', "[role='main']",
    '.article', '.content', '.post', '.entry',
    '.post-content', '.article-content', '.entry-content',
    '#content', '#main', '#article',
)

NON_CONTENT_SELECTORS = (
    'nav', 'header', 'footer', 'aside',
    '.sidebar', '.menu', '.navigation',
    '.comment', '.comments', '.footer', '.header',
)

MIN_SELECTOR_TEXT = 200
MIN_CANDIDATE_TEXT = 100

_BLANK_LINES_RE = re.compile(r'\n\s*\n\s*\n')


@dataclass(frozen=True)
class ExtractedContent:
    """Body of one article page."""
    text: str
    html: str = ""
    title: str = ""
    published: Optional[str] = None
    method: str = "failed"

    @property
    def ok(self) -> bool:
        return bool(self.text)


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, 'html.parser')


def trim_text(text: str) -> str:
    """Strip every line and drop blank ones."""
    lines = (re.sub(r'[ \t　]+', ' ', line).strip() for line in text.splitlines())
    return '\n'.join(line for line in lines if line)


def html_to_text(fragment: str) -> str:
    """Convert a short HTML fragment (feed summary, teaser) to one line of text."""
    if not fragment:
        return ""
    if '<' not in fragment and '&' not in fragment:
        return re.sub(r'\s+', ' ', fragment).strip()

    text = parse_html(fragment).get_text(separator=' ')
    text = html_lib.unescape(text)
    return re.sub(r'\s+', ' ', text).strip()


def element_text(element: Tag) -> str:
    """Multi-line text of an element, one block per line."""
    return trim_text(element.get_text(separator='\n'))


def clean_html(html: str, additional_selectors: Iterable[str] = ()) -> str:
    """
    Remove boilerplate elements from an HTML fragment.

    Args:
        html: HTML to clean
        additional_selectors: Source-specific selectors to remove as well

    Returns:
        Cleaned HTML
    """
    soup = parse_html(html)

    for selector in tuple(EXCLUDE_SELECTORS) + tuple(additional_selectors):
        try:
            matches = soup.select(selector)
        except SelectorSyntaxError as e:
            logger.warning(f"Skipping invalid exclude selector '{selector}': {e}")
            continue
        for element in matches:
            if not getattr(element, 'decomposed', False):
                element.decompose()

    return _BLANK_LINES_RE.sub('\n\n', str(soup))


def text_density(html: str, text: str) -> float:
    """Ratio of text length to markup length."""
    if not html:
        return 0.0
    return len(text) / len(html)


def link_density(element: Tag) -> float:
    """Share of an element's text that sits inside links."""
    total_text = element.get_text()
    if not total_text:
        return 0.0
    link_text_len = sum(len(a.get_text()) for a in element.find_all('a'))
    return link_text_len / len(total_text)


def content_score(element: Tag) -> float:
    """Score how much an element looks like an article body."""
    html = str(element)
    text = element.get_text()

    score = text_density(html, text) * 100.0
    score -= link_density(element) * 50.0
    score += min(len(element.find_all('p')), 10) * 5.0

    if len(text) > 500:
        score += 20.0
    if len(text) > 1000:
        score += 10.0

    class_attr = ' '.join(element.get('class') or []).lower()
    if any(hint in class_attr for hint in ('article', 'content', 'post')):
        score += 25.0
    if any(hint in class_attr for hint in ('sidebar', 'comment', 'nav')):
        score -= 25.0

    element_id = (element.get('id') or '').lower()
    if any(hint in element_id for hint in ('article', 'content', 'main')):
        score += 25.0

    return score


def extract_main_content(html: str) -> Optional[str]:
    """
    Find the main content block of a page without source-specific selectors.

    Well-known content containers win when they carry enough text; otherwise
    every block-level candidate is scored and the best one returned.
    """
    soup = parse_html(html)

    for selector in CONTENT_SELECTORS:
        element = soup.select_one(selector)
        if element is not None and len(element.get_text()) > MIN_SELECTOR_TEXT:
            return str(element)

    non_content = set()
    for selector in NON_CONTENT_SELECTORS:
        non_content.update(id(element) for element in soup.select(selector))

    best_score = 0.0
    best_html = None
    for element in soup.find_all(['div', 'section', 'article', 'main']):
        if id(element) in non_content:
            continue
        if len(element.get_text()) < MIN_CANDIDATE_TEXT:
            continue

        score = content_score(element)
        if score > best_score:
            best_score = score
            best_html = str(element)

    return best_html


def _extract_with_trafilatura(html: str, url: str) -> Optional[ExtractedContent]:
    result = trafilatura.extract(
        html,
        url=url,
        output_format='json',
        with_metadata=True,
        include_comments=False,
        include_tables=True
    )
    if not result:
        return None

    data = json.loads(result)
    text = trim_text(data.get('text') or '')
    if not text:
        return None

    return ExtractedContent(
        text=text,
        title=data.get('title') or '',
        published=data.get('date'),
        method='trafilatura'
    )


def extract_article(html: str,
                    url: str,
                    content_selectors: Sequence[str] = (),
                    exclude_selectors: Sequence[str] = ()) -> ExtractedContent:
    """
    Extract the body of an article page.

    Args:
        html: Full page HTML
        url: Page URL (used by trafilatura for metadata)
        content_selectors: Source-specific body selectors, tried in order
        exclude_selectors: Source-specific boilerplate selectors

    Returns:
        ExtractedContent; `ok` is False when nothing usable was found
    """
    soup = parse_html(html)

    for selector in content_selectors:
        element = soup.select_one(selector)
        if element is None:
            continue
        cleaned = clean_html(str(element), exclude_selectors)
        text = element_text(parse_html(cleaned))
        if text:
            return ExtractedContent(text=text, html=cleaned, method='selector')

    try:
        extracted = _extract_with_trafilatura(html, url)
    except (ValueError, TypeError) as e:
        logger.warning(f"Trafilatura extraction failed for {url}, using fallback: {e}")
        extracted = None
    if extracted is not None:
        return extracted

    main_content = extract_main_content(html)
    if main_content:
        cleaned = clean_html(main_content, exclude_selectors)
        text = element_text(parse_html(cleaned))
        if text:
            return ExtractedContent(text=text, html=cleaned, method='heuristic')

    logger.debug(f"No article content found in {url}")
    return ExtractedContent(text='', method='failed')
