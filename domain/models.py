"""Data model shared by the generation stages, the repair pipeline and the queue."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .generation_policy import ContentLength, is_structural_heading


def _str_tuple(values: Any) -> Tuple[str, ...]:
    if not values:
        return ()
    if isinstance(values, str):
        values = [values]
    return tuple(str(value).strip() for value in values if str(value).strip())


@dataclass(frozen=True)
class InternalLink:
    keyword: str
    url: str


@dataclass(frozen=True)
class PublishedArticle:
    title: str
    slug: str
    url: str
    focus_keyword: str = ""
    secondary_keywords: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ConsolidatedLink:
    """Approved ``{anchor, url}`` pair; the only internal links allowed in output."""

    anchor: str
    url: str


@dataclass(frozen=True)
class GenerationContext:
    """Brand and voice parameters for one job."""

    id: str
    brand_name: str
    brand_url: str
    niche: str = ""
    target_audience: str = ""
    tone: str = "professional"
    description: str = ""
    writing_style: Optional[str] = None
    avoid_topics: Tuple[str, ...] = ()
    cta_text: Optional[str] = None
    cta_url: Optional[str] = None
    unique_value_prop: Optional[str] = None
    competitors: Tuple[str, ...] = ()
    key_products: Tuple[str, ...] = ()
    target_location: Optional[str] = None
    internal_links: Tuple[InternalLink, ...] = ()
    existing_posts: Tuple[PublishedArticle, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GenerationContext":
        links = tuple(
            InternalLink(keyword=str(item["keyword"]).strip(), url=str(item["url"]).strip())
            for item in data.get("internalLinks") or []
            if isinstance(item, dict) and item.get("keyword") and item.get("url")
        )
        posts = tuple(
            PublishedArticle(
                title=str(item.get("title") or ""),
                slug=str(item.get("slug") or ""),
                url=str(item.get("url") or ""),
                focus_keyword=str(item.get("focusKeyword") or ""),
                secondary_keywords=_str_tuple(item.get("secondaryKeywords")),
            )
            for item in data.get("existingPosts") or []
            if isinstance(item, dict) and item.get("url")
        )
        return cls(
            id=str(data.get("id") or ""),
            brand_name=str(data.get("brandName") or "").strip(),
            brand_url=str(data.get("brandUrl") or "").strip(),
            niche=str(data.get("niche") or "").strip(),
            target_audience=str(data.get("targetAudience") or "").strip(),
            tone=str(data.get("tone") or "professional").strip(),
            description=str(data.get("description") or "").strip(),
            writing_style=(str(data["writingStyle"]).strip().lower() or None) if data.get("writingStyle") else None,
            avoid_topics=_str_tuple(data.get("avoidTopics")),
            cta_text=data.get("ctaText") or None,
            cta_url=data.get("ctaUrl") or None,
            unique_value_prop=data.get("uniqueValueProp") or None,
            competitors=_str_tuple(data.get("competitors")),
            key_products=_str_tuple(data.get("keyProducts")),
            target_location=data.get("targetLocation") or None,
            internal_links=links,
            existing_posts=posts,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "brandName": self.brand_name,
            "brandUrl": self.brand_url,
            "niche": self.niche,
            "targetAudience": self.target_audience,
            "tone": self.tone,
            "description": self.description,
            "writingStyle": self.writing_style,
            "avoidTopics": list(self.avoid_topics),
            "ctaText": self.cta_text,
            "ctaUrl": self.cta_url,
            "uniqueValueProp": self.unique_value_prop,
            "competitors": list(self.competitors),
            "keyProducts": list(self.key_products),
            "targetLocation": self.target_location,
            "internalLinks": [{"keyword": link.keyword, "url": link.url} for link in self.internal_links],
            "existingPosts": [
                {
                    "title": post.title,
                    "slug": post.slug,
                    "url": post.url,
                    "focusKeyword": post.focus_keyword,
                    "secondaryKeywords": list(post.secondary_keywords),
                }
                for post in self.existing_posts
            ],
        }

    def with_links(
        self,
        internal_links: Sequence[InternalLink],
        existing_posts: Sequence[PublishedArticle],
    ) -> "GenerationContext":
        return replace(self, internal_links=tuple(internal_links), existing_posts=tuple(existing_posts))


@dataclass(frozen=True)
class ArticleRequest:
    keyword: str
    content_length: ContentLength = ContentLength.MEDIUM
    include_images: bool = True
    include_faq: bool = True
    include_pro_tips: bool = True
    include_toc: bool = True
    custom_direction: Optional[str] = None


@dataclass(frozen=True)
class ResearchResult:
    """Research gathered before writing; consumed by every later stage."""

    content_gaps: Tuple[str, ...] = ()
    missing_subtopics: Tuple[str, ...] = ()
    key_statistics: Tuple[str, ...] = ()
    citations: Tuple[str, ...] = ()
    notes: str = ""
    degraded: bool = False

    def to_prompt_context(self) -> str:
        parts: List[str] = []
        if self.content_gaps:
            parts.append("Content gaps competitors miss:\n" + "\n".join(f"- {item}" for item in self.content_gaps))
        if self.missing_subtopics:
            parts.append("Subtopics to cover:\n" + "\n".join(f"- {item}" for item in self.missing_subtopics))
        if self.key_statistics:
            parts.append("Key statistics:\n" + "\n".join(f"- {item}" for item in self.key_statistics))
        if self.citations:
            parts.append("Verified sources you may cite:\n" + "\n".join(f"- {url}" for url in self.citations))
        if self.notes:
            parts.append(f"Research notes:\n{self.notes}")
        return "\n\n".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contentGaps": list(self.content_gaps),
            "missingSubtopics": list(self.missing_subtopics),
            "keyStatistics": list(self.key_statistics),
            "citations": list(self.citations),
            "notes": self.notes,
            "degraded": self.degraded,
        }


@dataclass(frozen=True)
class OutlineSection:
    heading: str
    points: Tuple[str, ...] = ()

    @property
    def is_structural(self) -> bool:
        return is_structural_heading(self.heading)


@dataclass(frozen=True)
class Outline:
    title: str
    sections: Tuple[OutlineSection, ...]
    unique_angle: str = ""

    @property
    def content_sections(self) -> Tuple[OutlineSection, ...]:
        return tuple(section for section in self.sections if not section.is_structural)


@dataclass(frozen=True)
class ImageRef:
    url: str
    alt: str
    heading: Optional[str] = None


@dataclass
class GeneratedArticle:
    title: str
    slug: str
    content: str
    excerpt: str
    meta_title: str
    meta_description: str
    focus_keyword: str
    secondary_keywords: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    category: str = ""
    structured_data: Dict[str, Any] = field(default_factory=dict)
    social_captions: Dict[str, str] = field(default_factory=dict)
    word_count: int = 0
    reading_time: int = 0
    featured_image: Optional[ImageRef] = None
    featured_image_alt: str = ""
    inline_images: List[ImageRef] = field(default_factory=list)
    research: ResearchResult = field(default_factory=ResearchResult)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "slug": self.slug,
            "content": self.content,
            "excerpt": self.excerpt,
            "metaTitle": self.meta_title,
            "metaDescription": self.meta_description,
            "focusKeyword": self.focus_keyword,
            "secondaryKeywords": list(self.secondary_keywords),
            "tags": list(self.tags),
            "category": self.category,
            "structuredData": self.structured_data,
            "socialCaptions": dict(self.social_captions),
            "wordCount": self.word_count,
            "readingTime": self.reading_time,
            "featuredImage": asdict(self.featured_image) if self.featured_image else None,
            "featuredImageAlt": self.featured_image_alt,
            "inlineImages": [asdict(image) for image in self.inline_images],
            "researchData": self.research.to_dict(),
            "warnings": list(self.warnings),
        }


__all__ = [
    "ArticleRequest",
    "ConsolidatedLink",
    "GeneratedArticle",
    "GenerationContext",
    "ImageRef",
    "InternalLink",
    "Outline",
    "OutlineSection",
    "PublishedArticle",
    "ResearchResult",
]
