"""Prompts for the Gemini studio calls."""

from __future__ import annotations

TREND_PROMPT = (
    "Analyze current Google Trends for digital products and kids' learning "
    "materials. Identify a high-demand niche and suggest a book title with "
    "reasons based on recent search data. Focus on topics that are trending "
    "but underserved."
)

REFERENCE_ANALYSIS_PROMPT = (
    "Analyze this image and describe its artistic style, color palette, and "
    "character design for reference in 2-3 sentences. Focus on descriptive "
    "visual elements."
)


def get_story_prompt(topic: str, page_count: int, language: str = "Thai") -> str:
    return f"""Create a children's book story about "{topic}" with {page_count} pages.
For each page, provide:
1. Story text in {language} (1-2 engaging sentences suitable for children).
2. Detailed English image prompt for high-quality children's book illustration.
Number the pages from 1 to {page_count} in reading order.
The story should have a clear beginning, middle, and end."""


def get_edit_prompt(edit_instruction: str) -> str:
    return (
        f"Modify this image based on: {edit_instruction}. "
        "Keep the same children's book illustration style and characters."
    )


def get_seo_prompt(
    topic: str,
    book_title: str,
    language: str = "Thai",
    keyword_count: int = 13,
) -> str:
    return f"""Create Etsy and Amazon SEO data for a digital children's book: "{book_title}" (Topic: {topic}).
Provide:
- A catchy, SEO-optimized title in {language}.
- A detailed product description in {language} highlighting benefits and content.
- {keyword_count} English tags/keywords."""


def with_reference_analysis(topic: str, analysis: str) -> str:
    """Fold a reference-image style description into the story topic."""
    if not analysis.strip():
        return topic
    return f"{topic} (Reference Analysis: {analysis.strip()})"
