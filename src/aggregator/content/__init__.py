"""
HTML content extraction for scraped sources.
"""

from .extractor import (
    ExtractedContent,
    clean_html,
    extract_article,
    extract_main_content,
    html_to_text,
    trim_text
)

__all__ = [
    'ExtractedContent', 'clean_html', 'extract_article',
    'extract_main_content', 'html_to_text', 'trim_text'
]
