"""JSON schemas for structured model calls."""
from __future__ import annotations

from typing import Any, Dict

_STRING_LIST: Dict[str, Any] = {"type": "array", "items": {"type": "string"}}

RESEARCH_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "contentGaps": _STRING_LIST,
        "missingSubtopics": _STRING_LIST,
        "keyStatistics": _STRING_LIST,
        "citations": {
            "type": "array",
            "items": {
                "anyOf": [
                    {"type": "string"},
                    {
                        "type": "object",
                        "properties": {"url": {"type": "string"}, "title": {"type": "string"}},
                        "required": ["url"],
                    },
                ]
            },
        },
        "notes": {"type": "string"},
    },
    "required": ["contentGaps", "missingSubtopics", "keyStatistics"],
}

OUTLINE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "uniqueAngle": {"type": "string"},
        "sections": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "heading": {"type": "string", "minLength": 1},
                    "points": _STRING_LIST,
                },
                "required": ["heading"],
            },
        },
    },
    "required": ["title", "sections"],
}

METADATA_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "slug": {"type": "string"},
        "excerpt": {"type": "string"},
        "metaTitle": {"type": "string"},
        "metaDescription": {"type": "string"},
        "secondaryKeywords": _STRING_LIST,
        "category": {"type": "string"},
        "tags": _STRING_LIST,
        "twitterCaption": {"type": "string"},
        "linkedinCaption": {"type": "string"},
        "instagramCaption": {"type": "string"},
        "facebookCaption": {"type": "string"},
        "structuredData": {"type": "object"},
        "featuredImageAlt": {"type": "string"},
    },
    "required": ["title", "metaTitle", "metaDescription"],
}

KEYWORD_SUGGESTIONS_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "keywords": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "keyword": {"type": "string", "minLength": 1},
                    "intent": {"type": "string"},
                    "difficulty": {"type": ["string", "number"]},
                    "priority": {"type": ["string", "number"]},
                    "rationale": {"type": "string"},
                },
                "required": ["keyword"],
            },
        }
    },
    "required": ["keywords"],
}

CLUSTER_PREVIEW_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "pillarTitle": {"type": "string", "minLength": 1},
        "description": {"type": "string"},
        "keywords": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "properties": {
                    "keyword": {"type": "string", "minLength": 1},
                    "role": {"type": "string", "enum": ["pillar", "supporting"]},
                    "searchIntent": {"type": "string"},
                    "suggestedWordCount": {"type": "integer"},
                    "description": {"type": "string"},
                },
                "required": ["keyword", "role"],
            },
        },
    },
    "required": ["pillarTitle", "keywords"],
}

__all__ = [
    "CLUSTER_PREVIEW_SCHEMA",
    "KEYWORD_SUGGESTIONS_SCHEMA",
    "METADATA_SCHEMA",
    "OUTLINE_SCHEMA",
    "RESEARCH_SCHEMA",
]
