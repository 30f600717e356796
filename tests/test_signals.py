"""Tests for text extraction and the individual signal detectors."""

import pytest

from llm_tier_router.router.signals import (
    POWER_KEYWORDS,
    SIGNAL_DETECTORS,
    count_code_lines,
    count_keyword_matches,
    detect_debugging,
    detect_multi_step_reasoning,
)
from llm_tier_router.router.text import extract_text_content
from llm_tier_router.router.types import ChatMessage, Thresholds


@pytest.fixture
def thresholds() -> Thresholds:
    return Thresholds()


# ── Text extraction ──────────────────────────────────────────────────

class TestExtractTextContent:
    def test_plain_messages_joined_by_newline(self):
        messages = [
            ChatMessage(role="user", content="Hello world"),
            ChatMessage(role="assistant", content="Hi there!"),
        ]
        assert extract_text_content(messages) == "Hello world\nHi there!"

    def test_content_parts_keep_only_text(self):
        messages = [ChatMessage(role="user", content=[
            {"type": "text", "text": "Check this image"},
            {"type": "image_url", "image_url": {"url": "http://example.com/img.png"}},
            {"type": "text", "text": "and this caption"},
        ])]
        assert extract_text_content(messages) == "Check this image\nand this caption"

    def test_image_only_message_contributes_empty_string(self):
        messages = [
            ChatMessage(role="user", content=[
                {"type": "image_url", "image_url": {"url": "http://example.com/a.png"}},
            ]),
            ChatMessage(role="user", content="caption"),
        ]
        assert extract_text_content(messages) == "\ncaption"

    def test_null_or_non_string_text_part(self):
        messages = [ChatMessage(role="user", content=[
            {"type": "text", "text": None},
            {"type": "text"},
            {"type": "text", "text": 42},
            {"type": "text", "text": "kept"},
        ])]
        assert extract_text_content(messages) == "\n\n\nkept"

    def test_missing_content(self):
        assert extract_text_content([ChatMessage(role="assistant")]) == ""

    def test_empty_input(self):
        assert extract_text_content([]) == ""


# ── Helpers ──────────────────────────────────────────────────────────

class TestCountCodeLines:
    def test_fenced_block_with_language_tag(self):
        text = (
            "Here is some code:\n"
            "```typescript\n"
            "function hello() {\n"
            "  console.log('world');\n"
            "}\n"
            "```\n"
        )
        # 3 lines in the block, plus the bare "function" statement line
        assert count_code_lines(text) == 4

    def test_multiple_blocks(self):
        text = (
            "```js\nconst a = 1;\nconst b = 2;\n```\n\n"
            "And more:\n\n"
            "```python\ndef foo():\n    return 42\n```\n"
        )
        # 4 block lines, plus "const", "const" and "return" statement lines
        assert count_code_lines(text) == 7

    def test_blank_lines_in_block_ignored(self):
        text = "```\nx = 1\n\n\ny = 2\n```"
        assert count_code_lines(text) == 2

    def test_bare_statements_without_fences(self):
        text = "import os\nfor item in items:\n    print(item)\nreturn value"
        assert count_code_lines(text) == 3

    def test_no_code(self):
        assert count_code_lines("Just some regular text without any code.") == 0


class TestCountKeywordMatches:
    def test_counts_distinct_keywords(self):
        text = "I need to refactor the architecture and debug this issue"
        keywords = ("refactor", "architecture", "debug", "optimize")
        assert count_keyword_matches(text, keywords) == 3

    def test_case_insensitive(self):
        assert count_keyword_matches("REFACTOR the Architecture", ("refactor", "architecture")) == 2

    def test_repeated_keyword_counts_once(self):
        assert count_keyword_matches("debug debug debug", ("debug",)) == 1

    def test_no_matches(self):
        assert count_keyword_matches("Hello world", ("refactor", "debug")) == 0

    def test_french_vocabulary(self):
        assert count_keyword_matches("Peux-tu optimiser cet algorithme ?", POWER_KEYWORDS) >= 2


class TestPatternFamilies:
    @pytest.mark.parametrize("text", [
        "First we need to analyze, then implement",
        "Step 1: Do this",
        "Compare React and Vue",
        "What are the differences between them",
        "How would you structure this service?",
        "D'abord lire le fichier, ensuite le parser",
        "Aide-moi à comprendre ce code",
    ])
    def test_multi_step_detected(self, text):
        assert detect_multi_step_reasoning(text) is True

    def test_multi_step_simple_text(self):
        assert detect_multi_step_reasoning("Hello world") is False

    @pytest.mark.parametrize("text", [
        "Error: Cannot read property of undefined",
        "Traceback (most recent call last):",
        "My code is not working",
        "Can you fix this bug?",
        "Le script ne fonctionne pas",
        "Erreur : fichier introuvable",
    ])
    def test_debugging_detected(self, text):
        assert detect_debugging(text) is True

    def test_debugging_plain_request(self):
        assert detect_debugging("Create a new function") is False


# ── Detectors ────────────────────────────────────────────────────────

class TestDetectors:
    def test_registry_order(self):
        assert list(SIGNAL_DETECTORS) == [
            "length",
            "code_volume",
            "power_keywords",
            "simple_keywords",
            "multi_step_reasoning",
            "debugging",
            "deep_question",
            "academic_topic",
            "programming_languages",
            "question_density",
        ]

    def test_length_below_threshold(self, thresholds):
        assert SIGNAL_DETECTORS["length"]("a" * 500, thresholds) == (0, None)

    def test_length_small_contribution_has_no_label(self, thresholds):
        assert SIGNAL_DETECTORS["length"]("a" * 700, thresholds) == (2, None)

    def test_length_labelled_above_five_points(self, thresholds):
        assert SIGNAL_DETECTORS["length"]("a" * 1200, thresholds) == (7, "long_message:1200chars")

    def test_length_capped(self, thresholds):
        points, _ = SIGNAL_DETECTORS["length"]("a" * 10000, thresholds)
        assert points == 20

    def test_code_between_ten_and_threshold(self, thresholds):
        text = "```\n" + "\n".join(["x = 1"] * 12) + "\n```"
        assert SIGNAL_DETECTORS["code_volume"](text, thresholds) == (5, "code:12lines")

    def test_code_above_threshold(self, thresholds):
        text = "```\n" + "\n".join(["x = 1"] * 40) + "\n```"
        assert SIGNAL_DETECTORS["code_volume"](text, thresholds) == (5, "code:40lines")

    def test_code_capped(self, thresholds):
        text = "```\n" + "\n".join(["x = 1"] * 200) + "\n```"
        assert SIGNAL_DETECTORS["code_volume"](text, thresholds) == (25, "code:200lines")

    def test_code_few_lines(self, thresholds):
        assert SIGNAL_DETECTORS["code_volume"]("```\nx = 1\n```", thresholds) == (0, None)

    def test_power_keywords_capped(self, thresholds):
        text = "refactor the distributed algorithm, fix the deadlock and security bottleneck"
        points, label = SIGNAL_DETECTORS["power_keywords"](text, thresholds)
        assert points == 40
        assert label.startswith("power_keywords:")

    def test_simple_keywords_negative(self, thresholds):
        assert SIGNAL_DETECTORS["simple_keywords"]("hello", thresholds) == (-3, "simple_keywords:1")

    def test_simple_keywords_suppressed_by_power_keyword(self, thresholds):
        assert SIGNAL_DETECTORS["simple_keywords"]("hello, please refactor", thresholds) == (0, None)

    def test_deep_question_requires_length(self, thresholds):
        assert SIGNAL_DETECTORS["deep_question"]("Why?", thresholds) == (0, None)
        text = "Why does the sky look blue at sunset, really?"
        assert SIGNAL_DETECTORS["deep_question"](text, thresholds) == (15, "deep_question")

    def test_academic_topic(self, thresholds):
        result = SIGNAL_DETECTORS["academic_topic"]("Tell me about quantum physics", thresholds)
        assert result == (15, "academic_topic")

    def test_academic_topic_french(self, thresholds):
        result = SIGNAL_DETECTORS["academic_topic"]("Un cours de thermodynamique", thresholds)
        assert result == (15, "academic_topic")

    def test_programming_languages(self, thresholds):
        result = SIGNAL_DETECTORS["programming_languages"]("python and rust", thresholds)
        assert result == (4, "programming:2langs")

    def test_question_density(self, thresholds):
        assert SIGNAL_DETECTORS["question_density"]("a? b?", thresholds) == (0, None)
        assert SIGNAL_DETECTORS["question_density"]("a? b? c?", thresholds) == (6, "questions:3")
        points, label = SIGNAL_DETECTORS["question_density"]("?" * 9, thresholds)
        assert (points, label) == (10, "questions:9")

    @pytest.mark.parametrize("name", list(SIGNAL_DETECTORS))
    def test_empty_text_contributes_nothing(self, name, thresholds):
        assert SIGNAL_DETECTORS[name]("", thresholds) == (0, None)
