"""Prompt assembly for every generation stage."""
from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional, Sequence

from helpers import slugify, truncate_at_sentence

from .generation_policy import LengthTier, keyword_hash
from .models import ConsolidatedLink, GenerationContext, Outline, OutlineSection, ResearchResult

WRITING_STYLE_GUIDANCE = {
    "informative": "Clear, factual, and educational. Use data, examples, and step-by-step explanations. Authoritative but accessible.",
    "conversational": "Friendly and approachable, like talking to a knowledgeable colleague. Use contractions, direct address ('you'), and relatable analogies.",
    "technical": "Precise and detailed, written for practitioners. Use correct terminology, include code snippets or configs where relevant, avoid over-simplifying.",
    "storytelling": "Narrative-driven. Open with a story or scenario. Use anecdotes, case studies, and real-world examples to illustrate points.",
    "persuasive": "Benefit-focused and compelling. Lead with outcomes, use social proof, and create urgency. Every section should move the reader toward action.",
    "humorous": "Light-hearted, witty, and fun, but always substantive. Use humor to make complex topics memorable, never at the expense of accuracy.",
}

BANNED_PHRASES = (
    "delve",
    "dive deep",
    "in today's fast-paced world",
    "buckle up",
    "game-changer",
    "leverage",
    "utilize",
    "tapestry",
    "realm",
    "robust",
    "cutting-edge",
    "embark on a journey",
    "navigating the complexities",
    "unlock the power",
    "it's important to note",
)

HOOK_STYLES = (
    ("CONTRARIAN", "Challenge a common assumption about \"{keyword}\" in 2-3 sentences. Name the misconception and refute it with a specific, surprising claim."),
    ("DATA-LEAD", "Open with a statistic woven into a complete sentence. {statistic}The first word must not be a digit or percentage."),
    ("QUESTION-CHAIN", "Pose one sharp, specific question that {audience} are struggling with right now, then pivot to why the answer matters."),
    ("CASE-STUDY-OPEN", "Open with a real, named result from the research: who achieved what, and how. Then contrast it with what most {audience} do."),
    ("MYTH-BUSTER", "State the biggest myth about \"{keyword}\" in the {niche} space as most people believe it, then contradict it with evidence."),
    ("COST-OF-INACTION", "Name what poor or no action on \"{keyword}\" costs {audience} in dollars, hours, or customers, then frame how this article solves it."),
    ("PREDICTION", "Open with a research-backed prediction about where \"{keyword}\" is heading in {year}, followed by its practical implication."),
    ("DIRECT-ADDRESS", "Name the exact wrong approach most {audience} take with \"{keyword}\", then state what they should do instead."),
)

PERSONALITIES = (
    "Write like a practitioner sharing notes from the field. Minimal theory, maximum real-world tactics.",
    "Write like an investigative journalist who uncovered something most people missed. Cite specific data and name real tools and companies.",
    "Write like a mentor who has seen others make expensive mistakes. Be direct: stop doing X, start doing Y, here is why.",
    "Write like a strategist briefing a CEO. Every paragraph should answer 'so what?' with frameworks, decision criteria and trade-offs.",
    "Write like a technical expert simplifying complex ideas with analogies specific to {audience}.",
    "Write like someone who just ran an experiment and is sharing the results, including before/after numbers and surprises.",
)

FAQ_FORMAT = """## Frequently Asked Questions
### First question written exactly as a user would search it?
Answer in 2-3 complete sentences.

### Second question written exactly as a user would search it?
Answer in 2-3 complete sentences.

The ### question heading ALWAYS comes before its answer. Never write text between the FAQ heading and the first question."""


def _bullets(items: Iterable[str], limit: Optional[int] = None, numbered: bool = False) -> str:
    values = [item for item in items if item][:limit] if limit else [item for item in items if item]
    if numbered:
        return "\n".join(f"{index}. {item}" for index, item in enumerate(values, start=1))
    return "\n".join(f"- {item}" for item in values)


def _year_rule(today: date) -> str:
    return (
        f"IMPORTANT: The current year is {today.year}. All year references must use {today.year}, "
        f"not {today.year - 1}."
    )


def build_system_prompt(ctx: GenerationContext, *, today: Optional[date] = None) -> str:
    today = today or date.today()
    style = WRITING_STYLE_GUIDANCE.get(ctx.writing_style or "")
    lines: List[str] = [
        f"You are a professional blog writer for {ctx.brand_name} ({ctx.brand_url}).",
    ]
    if ctx.description:
        lines.append(f"{ctx.brand_name} is a {ctx.description}.")
    lines.extend(
        [
            f"Your target audience is: {ctx.target_audience}",
            f"Writing tone: {ctx.tone}",
        ]
    )
    if style:
        lines.append(f"Writing style: {ctx.writing_style}. {style}")
    lines.extend(
        [
            f"Niche: {ctx.niche}",
            f"Today's date: {today.strftime('%B')} {today.day}, {today.year}. The current year is {today.year}.",
            f"YEAR RULE: never reference {today.year - 1} as the current year. Titles, headings and 'guide for [year]' phrases use {today.year}.",
        ]
    )
    if ctx.target_location:
        lines.append(f"Geographic focus: {ctx.target_location}. Use locally relevant data, examples and pricing.")
    if ctx.unique_value_prop:
        lines.append(f"{ctx.brand_name}'s unique value: {ctx.unique_value_prop}")
    if ctx.key_products:
        lines.append(f"Key products/features to reference naturally: {', '.join(ctx.key_products)}")
    if ctx.competitors:
        lines.append(
            f"Main competitors: {', '.join(ctx.competitors)}. Position {ctx.brand_name} as the better choice without attacking them."
        )
    lines.append("")
    lines.append("RULES:")
    lines.append(f"- Mention {ctx.brand_name} NO MORE THAN 2-3 times in the entire article.")
    if ctx.cta_text and ctx.cta_url:
        lines.append(f"- Include ONE primary CTA: \"{ctx.cta_text}\" ({ctx.cta_url}). Vary its phrasing, never repeat it verbatim.")
    if ctx.avoid_topics:
        lines.append(f"- Never mention: {', '.join(ctx.avoid_topics)}")
    lines.extend(
        [
            "- Format: Markdown with proper H2/H3 hierarchy. Write for humans first, search engines second.",
            "- Focused paragraphs of 3-5 sentences. No single-sentence paragraphs.",
            "- Use first-person expertise phrases at most 3-4 times, each worded differently.",
            "- Never open by announcing what the article covers, and never open with time-of-day scene-setting.",
            "- Never end with a 'Conclusion', 'Final Thoughts' or 'Wrapping Up' heading; end naturally after the last content section.",
            "- Never use em-dash characters. Use commas or periods instead.",
            f"- Banned phrases: {', '.join(BANNED_PHRASES)}.",
        ]
    )
    if ctx.existing_posts:
        lines.append("- When relevant, link to existing blog articles on the site (links are provided in the SEO step).")
    return "\n".join(lines)


def brand_context(ctx: GenerationContext) -> str:
    parts = []
    if ctx.target_location:
        parts.append(f"Geographic context: write for a {ctx.target_location} audience with relevant pricing, tools and examples.")
    if ctx.unique_value_prop:
        parts.append(f"Brand USP to highlight: \"{ctx.unique_value_prop}\".")
    if ctx.key_products:
        parts.append(f"Products/features to mention naturally where relevant: {', '.join(ctx.key_products)}")
    if ctx.competitors:
        parts.append(
            f"{ctx.brand_name} competes with {', '.join(ctx.competitors)}. Do not name competitors, but make the approach clearly superior."
        )
    return "\n".join(parts)


def pick_hook_style(keyword: str, ctx: GenerationContext, research: ResearchResult, *, today: Optional[date] = None) -> str:
    today = today or date.today()
    name, template = HOOK_STYLES[keyword_hash(keyword, 5) % len(HOOK_STYLES)]
    statistic = f"Use this real data point: \"{research.key_statistics[0]}\". " if research.key_statistics else ""
    instruction = template.format(
        keyword=keyword,
        audience=ctx.target_audience or "readers",
        niche=ctx.niche or "this",
        year=today.year,
        statistic=statistic,
    )
    return f"**{name}**\n{instruction}"


def pick_personality(keyword: str, ctx: GenerationContext) -> str:
    template = PERSONALITIES[keyword_hash(keyword, 7) % len(PERSONALITIES)]
    return template.format(audience=ctx.target_audience or "readers")


def build_research_prompt(keyword: str, ctx: GenerationContext) -> str:
    return f"""Research the topic "{keyword}" for a {ctx.niche} blog by {ctx.brand_name} aimed at {ctx.target_audience}.

Return JSON with:
- "contentGaps": specific points the top-ranking articles miss (5-8 items)
- "missingSubtopics": subtopics no current article covers well (3-5 items)
- "keyStatistics": recent statistics with their source named in the sentence (4-6 items)
- "citations": up to 5 authoritative source URLs (government, education, research, major news) that back those statistics
- "notes": a concise research summary of 150-300 words"""


def build_outline_prompt(
    keyword: str,
    ctx: GenerationContext,
    research: ResearchResult,
    tier: LengthTier,
    *,
    research_context: str,
    comparison: bool = False,
    include_faq: bool = True,
    today: Optional[date] = None,
) -> str:
    today = today or date.today()
    gaps = _bullets(research.content_gaps, 6, numbered=True) or "- Cover more specific, actionable advice than generic guides"
    location = f"\n- Geographic focus: {ctx.target_location}" if ctx.target_location else ""
    subtopics = ""
    if research.missing_subtopics:
        subtopics = "\nMissing subtopics no current article covers:\n" + _bullets(research.missing_subtopics, 4)
    statistics = _bullets(research.key_statistics, 4) or "- (no verified statistics)"
    rules = [
        f"- Title MUST contain the exact focus keyword \"{keyword}\" (or a very close variant), 50-70 characters.",
        f"- If the title references a year it MUST be {today.year}. Never use {today.year - 1}.",
        f"- MAXIMUM {tier.max_content_sections} content H2 sections. Fewer, deeper sections beat many shallow ones.",
        "- At least 2 sections must directly address the content gaps above. Each section gets 3-4 bullet points.",
        "- Include a \"Key Takeaways\" box near the top. It does not count toward the section limit.",
    ]
    if comparison:
        rules.append(f"- \"{keyword}\" is a comparison article. Include a comparison table section in 2nd or 3rd position.")
    if include_faq:
        rules.append("- Include 1 FAQ section. It does not count toward the section limit.")
    cta = f" Weave the CTA for {ctx.brand_name} into the final content section." if ctx.cta_text else ""
    rules.append(f"- Do not include a Conclusion, Final Thoughts or Wrapping Up section.{cta}")
    return f"""Create a detailed blog post outline for the keyword: "{keyword}"

## Brand Context
- Brand: {ctx.brand_name} ({ctx.niche})
- Target audience: {ctx.target_audience}
- Target word count: {tier.target_words} words{location}

## What Competitors Are Missing
{gaps}{subtopics}

## Key Statistics to Use
{statistics}

## Research Summary
{truncate_at_sentence(research_context, 3000)}

## Outline Rules
{chr(10).join(rules)}

Return JSON: {{"title": "...", "uniqueAngle": "one sentence", "sections": [{{"heading": "...", "points": ["...", "..."]}}]}}"""


def _toc_block(sections: Sequence[OutlineSection]) -> str:
    return "\n".join(f"- [{section.heading}](#{slugify(section.heading)})" for section in sections)


def build_draft_prompt(
    keyword: str,
    ctx: GenerationContext,
    outline: Outline,
    tier: LengthTier,
    research: ResearchResult,
    *,
    research_context: str,
    include_toc: bool,
    include_faq: bool,
    include_pro_tips: bool,
    comparison: bool,
    custom_direction: Optional[str] = None,
    today: Optional[date] = None,
) -> str:
    outline_block = "\n\n".join(
        f"## {section.heading}\n" + _bullets(section.points) for section in outline.sections
    )
    structure: List[str] = []
    if custom_direction:
        structure.append(f"- CUSTOM DIRECTION FROM USER: \"{custom_direction}\". Use it to guide the opening and the angle.")
    structure.append("- Open with a hook that goes directly into providing value.")
    structure.append("- Key Takeaways box (4-5 bullets).")
    if include_toc:
        structure.append(
            "- Table of Contents with clickable anchor links in this exact format:\n## Table of Contents\n"
            + _toc_block(outline.content_sections)
        )
    else:
        structure.append("- Do NOT include a Table of Contents.")
    structure.append("- Main sections following the outline.")
    if comparison:
        structure.append("- Include a markdown comparison table where it makes sense, usually early in the article.")
    if include_faq:
        structure.append(f"- FAQ section at the END with 4-5 questions in this strict format:\n{FAQ_FORMAT}")
    structure.append("- Do NOT add a Conclusion or Final Thoughts section.")
    pro_tips = (
        "- Use at most 2 \"Pro Tip:\" callouts in the whole article."
        if include_pro_tips
        else "- Do NOT include any \"Pro Tip:\" callouts."
    )
    return f"""Write a complete blog post about "{keyword}" for {ctx.brand_name}. Target length: {tier.target_words} words.
{_year_rule(today or date.today())}

Title: {outline.title}
Unique angle: {outline.unique_angle}
{brand_context(ctx)}

Outline to follow ({len(outline.sections)} sections, you MUST write ALL of them):
{outline_block}

## Content Gaps to Fill
{_bullets(research.content_gaps, 5, numbered=True)}

## Research Data
{truncate_at_sentence(research_context, 3500)}

## Hook
{pick_hook_style(keyword, ctx, research, today=today)}
Never start the article with a bare number, percentage, or abbreviation fragment.

## Structure
{chr(10).join(structure)}

## Personality
{pick_personality(keyword, ctx)}

## Content rules
- Write {tier.target_words} words. Use the keyword "{keyword}" in the first 100 words, one H2, and the final section.
{pro_tips}
- Do NOT use horizontal rules.
- Output ONLY the article in Markdown. Do not include the title as an H1; start with the hook paragraph."""


def build_intro_prompt(
    keyword: str,
    ctx: GenerationContext,
    sections: Sequence[OutlineSection],
    *,
    include_toc: bool,
    today: Optional[date] = None,
) -> str:
    toc = f"\n3. A Table of Contents with clickable anchor links:\n## Table of Contents\n{_toc_block(sections)}" if include_toc else ""
    return f"""Write the opening for a blog post about "{keyword}" for {ctx.brand_name}.
{_year_rule(today or date.today())}
{brand_context(ctx)}

Include:
1. A compelling 2-3 paragraph hook that opens with a statistic in a full sentence, a contrarian claim, or a short case study.
2. A "Key Takeaways" section with 4-5 bullet points.{toc}

Do NOT write any of the main sections yet. Output only Markdown."""


def build_section_prompt(
    keyword: str,
    ctx: GenerationContext,
    section: OutlineSection,
    *,
    index: int,
    words: int,
    is_last: bool,
    comparison: bool,
    today: Optional[date] = None,
) -> str:
    extra: List[str] = []
    if is_last:
        cta = f": \"{ctx.cta_text}\"" if ctx.cta_text else ""
        cta_url = f" ({ctx.cta_url})" if ctx.cta_url else ""
        extra.append(f"- Close with a natural call to action for {ctx.brand_name}{cta}{cta_url}.")
    if comparison and index == 0:
        extra.append("- Include a markdown comparison table in this section.")
    return f"""Write section {index + 1} of a blog post about "{keyword}" for {ctx.brand_name}.
{_year_rule(today or date.today())}

## {section.heading}
Points to cover:
{_bullets(section.points)}

Context: this is a {ctx.niche} article for {ctx.target_audience}.
{brand_context(ctx)}

Rules:
- Write roughly {words} words for this section.
- Start with the H2 heading: ## {section.heading}
- Keep paragraphs under 60 words.
{chr(10).join(extra)}

Output ONLY this section in Markdown."""


def build_faq_prompt(keyword: str, ctx: GenerationContext) -> str:
    return f"""Write a FAQ section for a blog post about "{keyword}" for {ctx.brand_name}.

Write 4-5 frequently asked questions with specific answers of 2-3 sentences each, using exactly this format:
{FAQ_FORMAT}

Output ONLY the FAQ section in Markdown, starting with ## Frequently Asked Questions."""


def build_tone_prompt(ctx: GenerationContext, draft: str, words: int, *, include_pro_tips: bool) -> str:
    pro_tips = (
        "- If there are more than 2 \"Pro Tip:\" labels, fold the weakest into the prose."
        if include_pro_tips
        else "- Remove ALL \"Pro Tip:\" callouts and fold their insights into the prose."
    )
    return f"""You are a senior editor. Polish this draft for {ctx.brand_name} so it reads as genuinely useful and enjoyable.

Brand voice: "{ctx.tone}"
Audience: {ctx.target_audience}

Checklist:
- Rewrite generic or scene-setting openings with a bold stat, contrarian claim, or short case study.
{pro_tips}
- {ctx.brand_name} appears at most 2-3 times. First-person expertise phrases appear at most 3-4 times, each worded differently.
- Remove em-dashes, banned phrases, horizontal rules and any Conclusion-style heading.
- Keep ALL headings exactly as written, character for character. Keep every fact, statistic, link and table.
- Do not shrink the article below 75% of its current length and do not add new H2 sections.

## Draft to edit ({words} words):
{draft}

Output ONLY the polished article in Markdown, complete, exactly once."""


def build_seo_prompt(
    keyword: str,
    ctx: GenerationContext,
    article: str,
    words: int,
    links: Sequence[ConsolidatedLink],
    citations: Sequence[str],
    *,
    target_words: str,
    include_faq: bool,
) -> str:
    if links:
        link_lines = "\n".join(f"   - \"{link.anchor}\" -> {link.url}" for link in links)
        link_rule = (
            "5. Add internal links ONLY from this list, copying URLs character for character. "
            "Never write partial URLs like \"com/path\". Each URL may appear at most twice.\n"
            f"{link_lines}"
        )
    else:
        link_rule = "5. Do NOT add any internal links. There are no published posts to link to yet. Do NOT invent URLs."
    if citations:
        citation_rule = "17. External reference links may ONLY use these verified sources:\n" + "\n".join(
            f"   - {url}" for url in citations
        )
    else:
        citation_rule = "17. Do NOT add external links."
    faq_rule = (
        "7. Ensure the FAQ section exists at the end; every answer is directly preceded by its ### question heading."
        if include_faq
        else "7. Skip FAQ if not present."
    )
    return f"""You are an SEO expert. Optimize the following blog post for the keyword "{keyword}" while keeping its style and tone.

## Rules:
1. Use the exact keyword "{keyword}" in the first 100 words, at least one H2 heading, and the final content section.
2. Keep keyword density natural: the exact keyword 3-5 times, variations elsewhere.
3. Add related keywords naturally.
4. Ensure proper heading hierarchy with no level skips.
{link_rule}
6. The intro paragraph contains the keyword naturally.
{faq_rule}
8. Vary paragraph lengths naturally.
9. {ctx.brand_name} appears at most 2-3 times; first-person phrases at most 3-4 times.
10. If there is a table of contents, it must match the actual headings.
11. Keep the article within {target_words} words. Do not drop sections.
12. Remove all horizontal rules and any Conclusion-style heading.
{citation_rule}

## Blog Post ({words} words):
{article}

Output ONLY the optimized blog post in Markdown, complete, exactly once."""


def build_metadata_prompt(keyword: str, ctx: GenerationContext, article: str) -> str:
    return f"""Generate SEO metadata and social media captions for this blog post about "{keyword}" for {ctx.brand_name} ({ctx.brand_url}).

## Blog Post:
{truncate_at_sentence(article, 3000)}

Return JSON with this exact structure:
{{
  "title": "Compelling blog title (50-70 chars, include keyword)",
  "slug": "url-friendly-slug-with-keyword",
  "excerpt": "2-3 sentence summary (160-200 chars)",
  "metaTitle": "SEO title tag under 60 chars",
  "metaDescription": "SEO meta description under 155 chars",
  "secondaryKeywords": ["keyword1", "keyword2", "keyword3"],
  "category": "Single category relevant to {ctx.niche}",
  "tags": ["tag1", "tag2", "tag3"],
  "twitterCaption": "...",
  "linkedinCaption": "...",
  "instagramCaption": "...",
  "facebookCaption": "...",
  "structuredData": {{"@context": "https://schema.org", "@type": "Article", "headline": "...", "author": {{"@type": "Organization", "name": "{ctx.brand_name}"}}}},
  "featuredImageAlt": "Descriptive alt text including the keyword"
}}"""


METADATA_SYSTEM_PROMPT = "You are an SEO specialist and social media expert. Return valid JSON only."


def build_image_prompt(subject: str, keyword: str, style: str) -> str:
    return f"{subject}. Topic: {keyword}. Style: {style}. No text, letters or watermarks in the image."


def build_keyword_suggest_prompt(ctx: GenerationContext, existing: Sequence[str], count: int = 20) -> str:
    existing_block = _bullets(existing, 50) or "- (none yet)"
    return f"""Suggest {count} blog keywords for {ctx.brand_name} ({ctx.brand_url}), a {ctx.niche} business serving {ctx.target_audience}.
{f"Geographic focus: {ctx.target_location}." if ctx.target_location else ""}

Keywords the site already targets (do not repeat them):
{existing_block}

Return JSON: {{"keywords": [{{"keyword": "...", "intent": "informational|commercial|transactional|navigational", "difficulty": "low|medium|high", "priority": "low|medium|high", "rationale": "one sentence"}}]}}"""


def build_cluster_prompt(seed: str, ctx: GenerationContext, existing: Sequence[str]) -> str:
    existing_block = _bullets(existing, 50) or "- (none yet)"
    return f"""Design a topic cluster around "{seed}" for {ctx.brand_name}, a {ctx.niche} business serving {ctx.target_audience}.

Existing keywords to avoid duplicating:
{existing_block}

Exactly ONE keyword has role "pillar" (a broad guide of 2500-3500 words); the rest (6-10) have role "supporting" and link back to it.

Return JSON: {{"pillarTitle": "...", "description": "...", "keywords": [{{"keyword": "...", "role": "pillar|supporting", "searchIntent": "...", "suggestedWordCount": 1500, "description": "..."}}]}}"""
