#!/usr/bin/env python3
"""
Derived article properties.

Taggers look at an article and return properties to merge into it. The
built-in taggers are keyword based; anything smarter plugs in through the
same PropertyTagger interface.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .models.article import Article

logger = logging.getLogger(__name__)


class PropertyTagger(ABC):
    """Produces derived properties for an article."""

    @abstractmethod
    def tag(self, article: Article) -> Dict[str, Any]:
        """
        Compute properties for one article.

        Returns:
            Mapping of property name to value, merged into article.properties
        """
        pass


class KeywordTagger(PropertyTagger):
    """Boolean property set when the title or summary mentions a keyword."""

    def __init__(self, name: str, keywords: Iterable[str]):
        """
        Initialize keyword tagger.

        Args:
            name: Property name, e.g. 'is_ai_related'
            keywords: Case-insensitive keywords. Latin keywords match whole
                words only; others (e.g. Japanese) match anywhere.
        """
        self.name = name
        self.keywords = tuple(keywords)
        self._pattern = self._compile(self.keywords)

    @staticmethod
    def _compile(keywords: Sequence[str]) -> Optional['re.Pattern']:
        parts = []
        for keyword in keywords:
            escaped = re.escape(keyword.lower())
            if keyword.isascii():
                parts.append(rf'\b{escaped}\b')
            else:
                parts.append(escaped)
        if not parts:
            return None
        return re.compile('|'.join(parts), re.IGNORECASE)

    def tag(self, article: Article) -> Dict[str, Any]:
        if self._pattern is None:
            return {self.name: False}
        text = f"{article.title}\n{article.summary}"
        return {self.name: bool(self._pattern.search(text))}


AI_KEYWORDS = (
    'ai', 'artificial intelligence', 'machine learning', 'deep learning', 'neural network',
    'llm', 'large language model', 'gpt', 'chatgpt', 'openai', 'anthropic', 'claude', 'gemini',
    'generative', 'transformer', 'diffusion model',
    '人工知能', '機械学習', '深層学習', '生成ai', '大規模言語モデル',
)

SECURITY_KEYWORDS = (
    'security', 'vulnerability', 'vulnerabilities', 'exploit', 'malware', 'ransomware',
    'phishing', 'cve', 'zero-day', 'breach', 'patch', 'advisory',
    'セキュリティ', '脆弱性', 'マルウェア', 'ランサムウェア', 'フィッシング', '不正アクセス',
)

IT_KEYWORDS = (
    'software', 'cloud', 'server', 'database', 'programming', 'developer', 'api', 'kubernetes',
    'linux', 'rust', 'python', 'javascript', 'open source', 'devops', 'infrastructure',
    'ソフトウェア', 'クラウド', 'サーバー', 'データベース', 'プログラミング', 'エンジニア', '開発',
)


def default_taggers() -> List[PropertyTagger]:
    return [
        KeywordTagger('is_ai_related', AI_KEYWORDS),
        KeywordTagger('is_security_related', SECURITY_KEYWORDS),
        KeywordTagger('is_it_related', IT_KEYWORDS),
    ]


def apply_taggers(articles: Iterable[Article], taggers: Sequence[PropertyTagger]) -> List[Article]:
    """Return new articles with every tagger's properties merged in."""
    tagged = []
    for article in articles:
        properties: Dict[str, Any] = {}
        for tagger in taggers:
            properties.update(tagger.tag(article))
        tagged.append(article.with_properties(properties) if properties else article)
    return tagged
