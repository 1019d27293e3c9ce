"""Unit tests for prompt construction."""

from __future__ import annotations

from dualtrans.engine.prompt_builder import build_batch_messages
from dualtrans.engine.prompt_builder import build_context_analysis_messages
from dualtrans.engine.prompt_builder import build_refine_messages
from dualtrans.engine.prompt_builder import build_summary_messages
from dualtrans.engine.prompt_builder import build_system_prompt
from dualtrans.engine.prompt_builder import build_translation_messages
from dualtrans.models import ChatMessage
from dualtrans.models import ContextType
from dualtrans.models import PageContext
from dualtrans.models import Tone


def _context() -> PageContext:
    return PageContext(
        type=ContextType.technical,
        domain="machine learning",
        tone=Tone.formal,
        terminology_hints=["gradient", "tensor"],
    )


class TestSystemPrompt:
    def test_names_both_languages(self):
        prompt = build_system_prompt("en", "zh")
        assert "from English to Chinese (Simplified)" in prompt

    def test_context_is_woven_in(self):
        prompt = build_system_prompt("en", "fr", _context())
        assert "technical content about machine learning" in prompt
        assert "formal tone" in prompt
        assert "gradient, tensor" in prompt

    def test_no_context_section_without_context(self):
        assert "Context:" not in build_system_prompt("en", "fr")

    def test_pure(self):
        assert build_system_prompt("en", "fr", _context()) == build_system_prompt(
            "en", "fr", _context()
        )


class TestTranslationMessages:
    def test_system_then_user(self):
        messages = build_translation_messages("Hello", "en", "fr")
        assert [m.role for m in messages] == ["system", "user"]
        assert messages[1].content == "Hello"


class TestBatchMessages:
    def test_numbered_user_message(self):
        messages = build_batch_messages(["Hello", "World"], "en", "fr")
        assert messages[1].content == "[1] Hello\n\n[2] World"
        assert "[number]" in messages[0].content


class TestRefineMessages:
    def test_embeds_texts_and_appends_instruction(self):
        messages = build_refine_messages(
            original_text="Hello",
            current_translation="Bonjour",
            instruction="More casual",
            history=[],
            source_lang="en",
            target_lang="fr",
            history_limit=20,
        )
        assert '"Hello"' in messages[0].content
        assert '"Bonjour"' in messages[0].content
        assert messages[-1] == ChatMessage(role="user", content="More casual")

    def test_history_capped_to_most_recent(self):
        history = [
            ChatMessage(role="user" if n % 2 == 0 else "assistant", content=str(n))
            for n in range(30)
        ]
        messages = build_refine_messages(
            original_text="a",
            current_translation="b",
            instruction="c",
            history=history,
            source_lang="en",
            target_lang="fr",
            history_limit=20,
        )
        replayed = [m.content for m in messages[1:-1]]
        assert replayed == [str(n) for n in range(10, 30)]


class TestContextAnalysisMessages:
    def test_content_truncated_to_preview(self):
        messages = build_context_analysis_messages("x" * 5000, url="https://a.b")
        assert "URL: https://a.b" in messages[1].content
        assert messages[1].content.count("x") == 3000


class TestSummaryMessages:
    def test_sections_only_on_request(self):
        plain = build_summary_messages("text")
        with_sections = build_summary_messages("text", include_sections=True)
        assert '"sections"' not in plain[0].content
        assert '"sections"' in with_sections[0].content
        assert '"keyPoints"' in plain[0].content

    def test_input_truncated(self):
        messages = build_summary_messages("y" * 12000, max_length=300)
        assert messages[1].content == "y" * 10000
        assert "in 300 characters or less" in messages[0].content
