"""Prompt construction for LLM translation, refinement and context analysis.

Every builder is a pure function of its inputs: the same arguments always
produce the same messages.
"""

from __future__ import annotations

from collections.abc import Sequence

from dualtrans.engine.batching import number_texts
from dualtrans.models.languages import language_name
from dualtrans.models.schemas import ChatMessage
from dualtrans.models.schemas import PageContext

_TRANSLATION_RULES = (
    "Rules:\n"
    "1. Translate accurately while maintaining natural flow\n"
    "2. Preserve the original meaning and intent\n"
    "3. Keep proper nouns, code, and technical terms as appropriate\n"
    "4. Do not add explanations or notes, only output the translation\n"
    "5. Maintain the same paragraph structure"
)

_BATCH_INSTRUCTION = (
    "You will receive multiple texts marked with [number]. Translate each one "
    "and keep the [number] markers in your response, one marker per text, "
    "in the same order."
)

_REFINE_RULES = (
    "Rules:\n"
    "1. Only output the refined translation, nothing else\n"
    "2. Follow the user's instruction to adjust the translation\n"
    "3. Preserve the original meaning while applying the requested style changes\n"
    "4. Keep proper nouns, code, and technical terms as appropriate\n"
    "5. Do not add explanations, notes, or quotation marks around the result"
)

_CONTEXT_ANALYSIS_PROMPT = """\
You are an expert content analyst. Analyze the following webpage content and \
determine its type, domain, and appropriate translation tone.

Return ONLY a valid JSON object with this exact structure:
{
  "type": "technical|news|academic|casual|legal|medical|general",
  "domain": "specific field or null",
  "tone": "formal|informal|neutral",
  "terminologyHints": ["key terms to watch for accurate translation"],
  "confidence": 0.0-1.0
}

Guidelines:
- technical: Programming, engineering, software documentation
- news: Current events, journalism, reports
- academic: Research papers, educational content, scientific articles
- casual: Blogs, social media, informal writing
- legal: Contracts, legal documents, terms of service
- medical: Healthcare, medical research, clinical content
- general: Everything else

The domain should be a specific field if applicable (e.g., "machine learning", \
"finance", "cooking").
Include 3-5 key terminology hints that would benefit from consistent translation."""

CONTEXT_PREVIEW_CHARS = 3000
SUMMARY_INPUT_CHARS = 10000

_SECTIONS_SHAPE = (
    ',\n  "sections": [\n    {"title": "Section Title", "summary": '
    '"Brief section summary", "startIndex": 0, "endIndex": 100}\n  ]'
)


def _context_section(context: PageContext) -> str:
    section = f"Context: This is {context.type.value} content"
    if context.domain:
        section += f" about {context.domain}"
    section += f". Use a {context.tone.value} tone."
    hints = [h for h in context.terminology_hints if h]
    if hints:
        section += f"\n\nKey terms to maintain consistency: {', '.join(hints)}"
    return section


def build_system_prompt(
    source_lang: str,
    target_lang: str,
    context: PageContext | None = None,
) -> str:
    """System prompt for a translation call.

    Content type, domain, tone and terminology hints are woven in when a
    page context is given.
    """
    parts = [
        "You are a professional translator. Translate the text from "
        f"{language_name(source_lang)} to {language_name(target_lang)}."
    ]
    if context is not None:
        parts.append(_context_section(context))
    parts.append(_TRANSLATION_RULES)
    return "\n\n".join(parts)


def build_translation_messages(
    text: str,
    source_lang: str,
    target_lang: str,
    context: PageContext | None = None,
) -> list[ChatMessage]:
    return [
        ChatMessage(
            role="system",
            content=build_system_prompt(source_lang, target_lang, context),
        ),
        ChatMessage(role="user", content=text),
    ]


def build_batch_messages(
    texts: Sequence[str],
    source_lang: str,
    target_lang: str,
    context: PageContext | None = None,
) -> list[ChatMessage]:
    """One combined request; texts are numbered ``[1]``, ``[2]``, ..."""
    system = build_system_prompt(source_lang, target_lang, context)
    return [
        ChatMessage(role="system", content=f"{system}\n\n{_BATCH_INSTRUCTION}"),
        ChatMessage(role="user", content=number_texts(texts)),
    ]


def build_refine_messages(
    *,
    original_text: str,
    current_translation: str,
    instruction: str,
    history: Sequence[ChatMessage],
    source_lang: str,
    target_lang: str,
    history_limit: int,
) -> list[ChatMessage]:
    """Multi-turn refinement conversation.

    Only the last *history_limit* caller-supplied messages are replayed.
    """
    system = (
        "You are a translation refinement assistant. You help users improve "
        "and polish translations.\n\n"
        f'Original text ({language_name(source_lang)}): "{original_text}"\n\n'
        f'Current translation ({language_name(target_lang)}): '
        f'"{current_translation}"\n\n'
        f"{_REFINE_RULES}"
    )
    recent = list(history)[-history_limit:] if history_limit > 0 else []
    return [
        ChatMessage(role="system", content=system),
        *(
            ChatMessage(role=m.role, content=m.content)
            for m in recent
            if m.role != "system"
        ),
        ChatMessage(role="user", content=instruction),
    ]


def build_context_analysis_messages(
    content: str,
    url: str | None = None,
    title: str | None = None,
) -> list[ChatMessage]:
    header = ""
    if title:
        header += f"Title: {title}\n"
    if url:
        header += f"URL: {url}\n"
    preview = content[:CONTEXT_PREVIEW_CHARS]
    return [
        ChatMessage(role="system", content=_CONTEXT_ANALYSIS_PROMPT),
        ChatMessage(role="user", content=f"{header}\nContent:\n{preview}"),
    ]


def build_summary_messages(
    text: str,
    *,
    max_length: int = 500,
    include_sections: bool = False,
) -> list[ChatMessage]:
    """Ask for a JSON summary with key points, and sections on request.

    Only the first ``SUMMARY_INPUT_CHARS`` characters are sent.
    """
    shape = (
        "{\n"
        '  "summary": "3-5 sentence summary of the main content",\n'
        '  "keyPoints": ["key point 1", "key point 2", "key point 3"]'
        f"{_SECTIONS_SHAPE if include_sections else ''}\n"
        "}"
    )
    system = (
        "You are an expert content summarizer. Create a concise summary of "
        "the following text.\n\n"
        f"Return ONLY a valid JSON object with this structure:\n{shape}\n\n"
        "Guidelines:\n"
        f"- The summary should capture the main ideas in {max_length} "
        "characters or less\n"
        "- Include 3-5 key points that represent the most important information\n"
        "- Key points should be actionable or informative takeaways\n"
        "- Be concise but don't lose critical information"
    )
    return [
        ChatMessage(role="system", content=system),
        ChatMessage(role="user", content=text[:SUMMARY_INPUT_CHARS]),
    ]
