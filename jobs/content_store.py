"""In-memory content store: websites, keywords, internal links and articles."""
from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Protocol

from domain.models import GeneratedArticle, GenerationContext, InternalLink, PublishedArticle

from .models import ISO_FORMAT, utcnow


class KeywordStatus(str, Enum):
    PENDING = "PENDING"
    RESEARCHING = "RESEARCHING"
    GENERATING = "GENERATING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class ArticleStatus(str, Enum):
    REVIEW = "REVIEW"
    PUBLISHED = "PUBLISHED"


@dataclass
class KeywordRecord:
    id: str
    website_id: str
    keyword: str
    status: KeywordStatus = KeywordStatus.PENDING
    blog_post_id: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "websiteId": self.website_id,
            "keyword": self.keyword,
            "status": self.status.value,
            "blogPostId": self.blog_post_id,
        }


@dataclass
class StoredArticle:
    id: str
    website_id: str
    keyword_id: Optional[str]
    article: GeneratedArticle
    status: ArticleStatus = ArticleStatus.REVIEW
    url: str = ""
    created_at: datetime = field(default_factory=utcnow)
    published_at: Optional[datetime] = None
    image_error: Optional[str] = None

    @property
    def slug(self) -> str:
        return self.article.slug

    def to_dict(self) -> Dict[str, object]:
        payload = self.article.to_dict()
        payload.update(
            {
                "id": self.id,
                "websiteId": self.website_id,
                "keywordId": self.keyword_id,
                "status": self.status.value,
                "url": self.url,
                "createdAt": self.created_at.strftime(ISO_FORMAT),
                "publishedAt": self.published_at.strftime(ISO_FORMAT) if self.published_at else None,
                "imageError": self.image_error,
            }
        )
        return payload


class ContentStoreProtocol(Protocol):
    def get_website(self, website_id: str) -> Optional[GenerationContext]:
        ...

    def keywords_for(self, website_id: str) -> List[KeywordRecord]:
        ...

    def set_keyword_status(
        self, keyword_id: str, status: KeywordStatus, *, blog_post_id: Optional[str] = None
    ) -> Optional[KeywordRecord]:
        ...

    def internal_links(self, website_id: str) -> List[InternalLink]:
        ...

    def create_article(
        self,
        website_id: str,
        keyword_id: Optional[str],
        article: GeneratedArticle,
        *,
        status: ArticleStatus = ArticleStatus.REVIEW,
    ) -> StoredArticle:
        ...

    def get_article(self, article_id: str) -> Optional[StoredArticle]:
        ...

    def update_article(self, article_id: str, mutator: Callable[[StoredArticle], None]) -> Optional[StoredArticle]:
        ...

    def delete_article(self, article_id: str) -> bool:
        ...

    def published_articles(self, website_id: str) -> List[PublishedArticle]:
        ...


def article_url(ctx: GenerationContext, slug: str) -> str:
    return f"{ctx.brand_url.rstrip('/')}/blog/{slug}"


class ContentStore:
    """Thread-safe in-memory stand-in for the relational content tables."""

    def __init__(self, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._lock = threading.RLock()
        self._clock = clock
        self._websites: Dict[str, GenerationContext] = {}
        self._keywords: Dict[str, KeywordRecord] = {}
        self._links: Dict[str, List[InternalLink]] = {}
        self._articles: Dict[str, StoredArticle] = {}

    # websites -------------------------------------------------------------

    def add_website(self, ctx: GenerationContext) -> GenerationContext:
        if not ctx.id:
            ctx = replace(ctx, id=uuid.uuid4().hex)
        with self._lock:
            self._websites[ctx.id] = ctx
            if ctx.internal_links:
                self._links.setdefault(ctx.id, []).extend(ctx.internal_links)
        return ctx

    def get_website(self, website_id: str) -> Optional[GenerationContext]:
        with self._lock:
            return self._websites.get(website_id)

    # keywords -------------------------------------------------------------

    def add_keyword(self, website_id: str, keyword: str, *, keyword_id: Optional[str] = None) -> KeywordRecord:
        record = KeywordRecord(id=keyword_id or uuid.uuid4().hex, website_id=website_id, keyword=keyword.strip())
        with self._lock:
            self._keywords[record.id] = record
            return replace(record)

    def get_keyword(self, keyword_id: str) -> Optional[KeywordRecord]:
        with self._lock:
            record = self._keywords.get(keyword_id)
            return replace(record) if record else None

    def keywords_for(self, website_id: str) -> List[KeywordRecord]:
        with self._lock:
            return [replace(record) for record in self._keywords.values() if record.website_id == website_id]

    def set_keyword_status(
        self, keyword_id: str, status: KeywordStatus, *, blog_post_id: Optional[str] = None
    ) -> Optional[KeywordRecord]:
        with self._lock:
            record = self._keywords.get(keyword_id)
            if record is None:
                return None
            record.status = status
            if blog_post_id:
                record.blog_post_id = blog_post_id
            return replace(record)

    # internal links -------------------------------------------------------

    def add_internal_links(self, website_id: str, links: Iterable[InternalLink]) -> List[InternalLink]:
        with self._lock:
            stored = self._links.setdefault(website_id, [])
            known = {link.url for link in stored}
            for link in links:
                if link.url not in known:
                    stored.append(link)
                    known.add(link.url)
            return list(stored)

    def internal_links(self, website_id: str) -> List[InternalLink]:
        with self._lock:
            return list(self._links.get(website_id, []))

    # articles -------------------------------------------------------------

    def slug_exists(self, website_id: str, slug: str) -> bool:
        with self._lock:
            return any(item.website_id == website_id and item.slug == slug for item in self._articles.values())

    def _unique_slug_locked(self, website_id: str, slug: str) -> str:
        candidate = slug
        suffix = 0
        while self.slug_exists(website_id, candidate):
            suffix += 1
            candidate = f"{slug}-{suffix}"
        return candidate

    def create_article(
        self,
        website_id: str,
        keyword_id: Optional[str],
        article: GeneratedArticle,
        *,
        status: ArticleStatus = ArticleStatus.REVIEW,
    ) -> StoredArticle:
        with self._lock:
            ctx = self._websites.get(website_id)
            slug = self._unique_slug_locked(website_id, article.slug)
            article = replace(article, slug=slug)
            now = self._clock()
            stored = StoredArticle(
                id=uuid.uuid4().hex,
                website_id=website_id,
                keyword_id=keyword_id,
                article=article,
                status=status,
                url=article_url(ctx, slug) if ctx else "",
                created_at=now,
                published_at=now if status == ArticleStatus.PUBLISHED else None,
            )
            self._articles[stored.id] = stored
            return replace(stored)

    def get_article(self, article_id: str) -> Optional[StoredArticle]:
        with self._lock:
            stored = self._articles.get(article_id)
            return replace(stored) if stored else None

    def update_article(self, article_id: str, mutator: Callable[[StoredArticle], None]) -> Optional[StoredArticle]:
        with self._lock:
            stored = self._articles.get(article_id)
            if stored is None:
                return None
            mutator(stored)
            return replace(stored)

    def delete_article(self, article_id: str) -> bool:
        with self._lock:
            return self._articles.pop(article_id, None) is not None

    def published_articles(self, website_id: str) -> List[PublishedArticle]:
        with self._lock:
            items = sorted(
                (
                    item
                    for item in self._articles.values()
                    if item.website_id == website_id and item.status == ArticleStatus.PUBLISHED
                ),
                key=lambda item: item.created_at,
            )
            return [
                PublishedArticle(
                    title=item.article.title,
                    slug=item.slug,
                    url=item.url,
                    focus_keyword=item.article.focus_keyword,
                    secondary_keywords=tuple(item.article.secondary_keywords),
                )
                for item in items
                if item.url
            ]


__all__ = [
    "ArticleStatus",
    "ContentStore",
    "ContentStoreProtocol",
    "KeywordRecord",
    "KeywordStatus",
    "StoredArticle",
    "article_url",
]
