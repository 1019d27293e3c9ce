"""Unit tests for fragment fingerprints."""

from __future__ import annotations

from dualtrans.models import fingerprint
from dualtrans.models import text_hash
from dualtrans.models import TranslationFragment


class TestFingerprint:
    def test_deterministic(self):
        assert fingerprint("Hello", "en", "zh") == fingerprint("Hello", "en", "zh")

    def test_missing_context_equals_general(self):
        assert fingerprint("Hello", "en", "zh") == fingerprint(
            "Hello", "en", "zh", "general"
        )

    def test_each_field_changes_the_key(self):
        base = fingerprint("Hello", "en", "zh", "news")
        assert fingerprint("Hello!", "en", "zh", "news") != base
        assert fingerprint("Hello", "fr", "zh", "news") != base
        assert fingerprint("Hello", "en", "ja", "news") != base
        assert fingerprint("Hello", "en", "zh", "legal") != base

    def test_separators_in_text_do_not_collide(self):
        assert fingerprint("a:en", "zh", "ja") != fingerprint("a", "en:zh", "ja")

    def test_length_is_32_hex_chars(self):
        fp = fingerprint("Hello", "en", "zh")
        assert len(fp) == 32
        int(fp, 16)

    def test_unicode_text(self):
        assert fingerprint("你好", "zh", "en") != fingerprint("你好！", "zh", "en")


class TestFragmentFingerprint:
    def test_fragment_matches_function(self):
        frag = TranslationFragment(text="Hi", source_lang="en", target_lang="fr")
        assert frag.fingerprint == fingerprint("Hi", "en", "fr")
        assert frag.effective_context_type == "general"


class TestTextHash:
    def test_full_sha256(self):
        assert len(text_hash("x")) == 64
        assert text_hash("x") != text_hash("y")
