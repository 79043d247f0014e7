from __future__ import annotations

import re
from datetime import date

import httpx
import pytest

from conftest import FAQ_BLOCK, DummyImagePipeline, echo_article, paragraph, section, toc
from domain.generation_policy import ContentLength
from domain.models import ArticleRequest, OutlineSection
from orchestrate import (
    ArticlePipeline,
    PipelineStage,
    StageError,
    cap_content_sections,
    ensure_keyword_in_title,
    finalize_outline,
    generate_article_from_payload,
    inline_image_targets,
    insert_after_first_paragraph,
)

TODAY = date(2026, 10, 19)
KEYWORD = "best crm for agencies"
CITATION = "https://www.gartner.com/en/crm-research"
HEADINGS = [
    "Why Agencies Outgrow Spreadsheets",
    "Core Features to Compare",
    "Pricing Models Explained",
    "Rolling Out a CRM Without Chaos",
]

RESEARCH = {
    "contentGaps": ["Few guides compare per-seat pricing for small agencies"],
    "missingSubtopics": ["Client portals"],
    "keyStatistics": ["Gartner reports CRM spend grew 12% in 2025"],
    "citations": [CITATION, "ftp://not-a-web-source.example"],
    "notes": "Agencies want shared pipelines and client reporting.",
}
OUTLINE = {
    "title": "The 2025 Playbook for Agency Client Management",
    "uniqueAngle": "Written for agencies with under 50 staff",
    "sections": [
        {"heading": "Key Takeaways"},
        *({"heading": heading, "points": ["Point one", "Point two"]} for heading in HEADINGS),
        {"heading": "Measuring CRM Success", "points": ["Retention"]},
        {"heading": "Frequently Asked Questions"},
    ],
}
METADATA = {
    "title": "Best CRM for Agencies",
    "slug": "best-crm-for-agencies",
    "metaTitle": "Best CRM for Agencies in 2026",
    "metaDescription": "How agencies pick a CRM that keeps clients and deals in one place.",
    "excerpt": "A practical guide to choosing an agency CRM.",
    "tags": ["crm", "agencies"],
    "category": "Software",
    "twitterCaption": "Pick the right CRM.",
}
KEY_TAKEAWAYS = """## Key Takeaways

- A shared CRM replaces scattered client spreadsheets.
- Pricing per seat matters more than headline plans.
- Rollouts succeed when one owner drives adoption.
- Track retention and renewals, not just deals."""
LINK_PARAGRAPH = (
    "Compare [pricing](https://northwind.io/pricing), read our [case studies](/case-studies) and check "
    f"the [Gartner research]({CITATION}) before buying."
)
EXPECTED_TITLE = "The 2026 Playbook for Agency Client Management: Best Crm For Agencies"


def _full_draft() -> str:
    sections = [section(heading, f"s{index}") for index, heading in enumerate(HEADINGS, start=1)]
    sections[0] = f"{sections[0]}\n\n{LINK_PARAGRAPH}"
    return "\n\n".join(
        [paragraph("introA"), paragraph("introB"), KEY_TAKEAWAYS, toc(HEADINGS), *sections, FAQ_BLOCK]
    )


def _routes(draft, *, research=RESEARCH, metadata=METADATA, extra=()):
    return [
        *extra,
        ("Research the topic", research),
        ("Create a detailed blog post outline", OUTLINE),
        ("Write a complete blog post", draft),
        ("You are a senior editor.", echo_article),
        ("You are an SEO expert.", echo_article),
        ("Generate SEO metadata", metadata),
        ("A blog post was being written", ""),
    ]


def _pipeline(client, **kwargs) -> ArticlePipeline:
    kwargs.setdefault("today", TODAY)
    kwargs.setdefault("max_workers", 2)
    return ArticlePipeline(client, **kwargs)


def test_full_article_from_single_draft(scripted_client, brand_context):
    client, transport = scripted_client(_routes(_full_draft()))
    images = DummyImagePipeline()
    events = []
    pipeline = _pipeline(
        client,
        image_pipeline=images,
        citation_checker=lambda url: True,
        progress_callback=events.append,
        images_enabled=True,
    )

    article = pipeline.run(ArticleRequest(keyword=KEYWORD), brand_context)

    assert article.title == EXPECTED_TITLE
    assert "crm" in article.title.lower()
    assert article.slug == "best-crm-for-agencies"
    assert article.research.citations == (CITATION,)
    assert article.warnings == []

    content = article.content
    assert not re.search(r"\]\(https?://northwind\.io", content)
    assert "](/" not in content
    assert "Compare pricing, read our case studies and check" in content
    assert f"[Gartner research]({CITATION})" in content
    assert not any(line.startswith("# ") for line in content.splitlines())
    assert content.rstrip()[-1] in ".!?"
    draft_prompt = transport.prompts("Write a complete blog post")[0]
    assert f"## {HEADINGS[-1]}" in draft_prompt
    assert "Measuring CRM Success" not in draft_prompt
    assert article.word_count >= 800
    assert article.reading_time == -(-article.word_count // 200)

    assert article.featured_image.url == "https://cdn.example.com/best-crm-for-agencies-featured.webp"
    assert [image.url for image in article.inline_images] == [
        "https://cdn.example.com/best-crm-for-agencies-inline-1.webp",
        "https://cdn.example.com/best-crm-for-agencies-inline-2.webp",
    ]
    assert content.count("![") == 2
    assert images.featured_calls[0][2] == "site-1"

    assert transport.prompts("Write the opening") == []
    percentages = [event["percentage"] for event in events]
    assert percentages == sorted(percentages)
    assert percentages[-1] == 100
    assert [event["step"] for event in events] == [stage.value for stage in PipelineStage]
    assert all(entry.status == "ok" for entry in pipeline.logs)


def test_incomplete_draft_is_rebuilt_section_by_section(scripted_client, brand_context):
    short_draft = "\n\n".join(
        [paragraph("shortA"), section(HEADINGS[0], "d1", 3), section(HEADINGS[1], "d2", 3)]
    )
    intro = "\n\n".join(
        [paragraph("fbA"), paragraph("fbB"), paragraph("fbC"), KEY_TAKEAWAYS, toc(HEADINGS)]
    )
    section_routes = [
        (f"Write section {index} of", section(heading, f"f{index}", 6))
        for index, heading in enumerate(HEADINGS, start=1)
    ]
    client, transport = scripted_client(
        _routes(short_draft, extra=[("Write the opening", intro), *section_routes])
    )
    events = []
    pipeline = _pipeline(client, progress_callback=events.append)

    article = pipeline.run(
        ArticleRequest(keyword=KEYWORD, include_faq=False, include_images=False), brand_context
    )

    draft_entry = next(entry for entry in pipeline.logs if entry.stage is PipelineStage.DRAFT)
    assert draft_entry.notes["fallback"] is True
    assert 1000 <= article.word_count <= 1500
    assert len(transport.prompts("Write the opening")) == 1
    assert transport.prompts("Write a FAQ") == []
    for heading in HEADINGS:
        assert f"## {heading}" in article.content
    assert article.content.index(HEADINGS[0]) < article.content.index(HEADINGS[3])
    assert article.featured_image is None

    assert any(
        event["step"] == "draft" and event["message"].startswith("Draft was incomplete") for event in events
    )
    percentages = [event["percentage"] for event in events]
    assert percentages == sorted(percentages)


def test_degraded_research_and_metadata_fallback(scripted_client, brand_context):
    client, _ = scripted_client(
        _routes(
            _full_draft(),
            research=httpx.ConnectError("research backend down"),
            metadata="this is not json",
        )
    )
    article = _pipeline(client).run(ArticleRequest(keyword=KEYWORD, include_images=False), brand_context)

    assert article.research.degraded is True
    assert article.research.citations == ()
    assert "research_degraded" in article.warnings
    assert "metadata_fallback" in article.warnings
    assert article.slug == "the-2026-playbook-for-agency-client-management-best-crm-for-agencies"
    assert article.meta_title == EXPECTED_TITLE[:60]
    assert article.category == "marketing agency software"
    # No verified citations, so the external link is demoted as well.
    assert "](https://www.gartner.com" not in article.content


def test_featured_image_failure_is_a_warning(scripted_client, brand_context):
    client, _ = scripted_client(_routes(_full_draft()))
    article = _pipeline(client, image_pipeline=DummyImagePipeline(fail_featured=1), images_enabled=True).run(
        ArticleRequest(keyword=KEYWORD), brand_context
    )
    assert article.featured_image is None
    assert "featured_image_failed" in article.warnings
    assert len(article.inline_images) == 2


def test_empty_keyword_is_rejected(scripted_client, brand_context):
    client, transport = scripted_client([])
    with pytest.raises(StageError) as excinfo:
        _pipeline(client).run(ArticleRequest(keyword="   "), brand_context)
    assert excinfo.value.status_code == 400
    assert transport.calls == []


def test_generate_article_from_payload_returns_stage_log(scripted_client, brand_context):
    client, _ = scripted_client(_routes(_full_draft()))
    result = generate_article_from_payload(
        data={"keyword": KEYWORD, "contentLength": "medium", "includeImages": False},
        context={"id": "site-1", "brandName": "Northwind", "brandUrl": "https://northwind.io"},
        client=client,
    )
    assert [stage["stage"] for stage in result["stages"]] == [stage.value for stage in PipelineStage]
    assert all(stage["status"] == "ok" for stage in result["stages"])
    assert result["article"]["title"] == EXPECTED_TITLE


def test_finalize_outline_requires_sections():
    with pytest.raises(StageError):
        finalize_outline({"title": "Guide", "sections": []}, KEYWORD, ContentLength.MEDIUM, today=TODAY)


def test_finalize_outline_pads_single_section_and_updates_year():
    outline = finalize_outline(
        {"title": "Best CRM for Agencies in 2025", "sections": [{"heading": "Getting Started"}]},
        KEYWORD,
        ContentLength.MEDIUM,
        today=TODAY,
    )
    assert outline.title == "Best CRM for Agencies in 2026"
    assert [section.heading for section in outline.sections] == [
        "Getting Started",
        f"Understanding {KEYWORD}",
    ]


def test_cap_keeps_structural_sections_in_place():
    sections = [OutlineSection("Key Takeaways")]
    sections += [OutlineSection(f"Topic {index}") for index in range(6)]
    sections += [OutlineSection("FAQ")]
    capped = cap_content_sections(sections, 4)
    assert [section.heading for section in capped] == [
        "Key Takeaways",
        "Topic 0",
        "Topic 1",
        "Topic 2",
        "Topic 3",
        "FAQ",
    ]


def test_ensure_keyword_in_title():
    assert ensure_keyword_in_title("Best CRM for Agencies", "crm") == "Best CRM for Agencies"
    assert ensure_keyword_in_title("Best CRM Tools for Agencies", "crm tools for small agencies") == (
        "Best CRM Tools for Agencies"
    )
    assert ensure_keyword_in_title("Client Management", "crm") == "Client Management: Crm"
    long_title = "x" * 73
    clipped = ensure_keyword_in_title(long_title, "crm")
    assert clipped.startswith("Crm: ")
    assert clipped.endswith("...")
    assert len(clipped) == 75


@pytest.mark.parametrize(
    "count, expected",
    [(0, []), (1, []), (2, [0, 1]), (3, [0, 1]), (4, [1, 3]), (7, [1, 3])],
)
def test_inline_image_targets(count, expected):
    assert inline_image_targets([f"H{index}" for index in range(count)]) == expected


def test_insert_after_first_paragraph():
    text = "## A\n\nPara a1.\nline two.\n\nPara a2.\n\n## B\n\nPara b."
    assert insert_after_first_paragraph(text, 0, "![x](u)") == (
        "## A\n\nPara a1.\nline two.\n\n![x](u)\n\nPara a2.\n\n## B\n\nPara b."
    )
    assert insert_after_first_paragraph(text, 1, "![x](u)") == text + "\n\n![x](u)"
    assert insert_after_first_paragraph(text, 5, "![x](u)") == text
