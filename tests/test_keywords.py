from __future__ import annotations

import keywords
from keywords import KeywordSuggestion


def test_parse_manual_keywords_splits_and_deduplicates():
    parsed = keywords.parse_manual_keywords("CRM for agencies, crm for agencies;\n\"Client portals\"\n")
    assert parsed == ["CRM for agencies", "Client portals"]


def test_parse_manual_keywords_keeps_all_items_without_limit():
    many_keywords = [f"Keyword {idx}" for idx in range(1, 12)]

    parsed = keywords.parse_manual_keywords(many_keywords)

    assert len(parsed) == len(many_keywords)
    assert parsed == many_keywords


def test_keyword_key_normalizes_case_space_and_punctuation():
    assert keywords.keyword_key("  “Best   CRM Tools?” ") == "best crm tools"


def test_filter_new_suggestions_drops_known_and_repeated():
    suggestions = [
        KeywordSuggestion("Agency CRM pricing"),
        KeywordSuggestion("agency crm pricing!"),
        KeywordSuggestion("Best CRM for agencies"),
        KeywordSuggestion("Client onboarding checklist"),
    ]
    fresh = keywords.filter_new_suggestions(suggestions, ["best crm for Agencies"])
    assert [item.keyword for item in fresh] == ["Agency CRM pricing", "Client onboarding checklist"]


def test_suggest_keywords_filters_existing(scripted_client, brand_context):
    client, transport = scripted_client(
        [
            (
                "Suggest ",
                {
                    "keywords": [
                        {"keyword": "CRM for agencies", "intent": "commercial", "difficulty": 3},
                        {"keyword": "Agency client portal", "intent": "informational", "priority": "high"},
                    ]
                },
            )
        ]
    )

    result = keywords.suggest_keywords(client, brand_context, ["crm for agencies"], count=5)

    assert [item.keyword for item in result] == ["Agency client portal"]
    assert result[0].to_dict()["priority"] == "high"
    prompt = transport.calls[0]["prompt"]
    assert prompt.startswith("Suggest 5 blog keywords for Northwind")
    assert "- crm for agencies" in prompt


def test_cluster_preview_keeps_exactly_one_pillar(scripted_client, brand_context):
    client, _ = scripted_client(
        [
            (
                "Design a topic cluster",
                {
                    "pillarTitle": "The Agency CRM Guide",
                    "description": "Everything agencies need to pick a CRM.",
                    "keywords": [
                        {"keyword": "agency crm", "role": "pillar"},
                        {"keyword": "crm pricing", "role": "pillar"},
                        {"keyword": "crm onboarding", "role": "supporting", "suggestedWordCount": 1200},
                        {"keyword": "Agency CRM", "role": "supporting"},
                    ],
                },
            )
        ]
    )

    preview = keywords.generate_cluster_preview(client, "agency crm", brand_context, [])

    assert [item.role for item in preview.keywords] == ["pillar", "supporting", "supporting"]
    assert preview.pillar.suggested_word_count == keywords.PILLAR_WORD_COUNT
    assert preview.to_suggestion() == {
        "pillarKeyword": "agency crm",
        "name": "The Agency CRM Guide",
        "supportingKeywords": ["crm pricing", "crm onboarding"],
        "rationale": "Everything agencies need to pick a CRM.",
    }


def test_cluster_preview_promotes_seed_when_no_pillar(scripted_client, brand_context):
    client, _ = scripted_client(
        [
            (
                "Design a topic cluster",
                {
                    "pillarTitle": "Client Reporting",
                    "keywords": [
                        {"keyword": "reporting templates", "role": "supporting"},
                        {"keyword": "client reporting", "role": "supporting"},
                    ],
                },
            )
        ]
    )

    preview = keywords.generate_cluster_preview(client, "Client Reporting", brand_context, [])

    assert preview.pillar.keyword == "client reporting"
    assert [item.keyword for item in preview.supporting] == ["reporting templates"]
