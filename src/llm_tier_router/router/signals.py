"""Complexity signal detectors.

Each detector is a pure function of ``(text, thresholds)`` that returns the
number of points it contributes and, when it fired, a short label describing
why. Vocabularies cover English and French.

Detector order matters: labels are reported in registry order.
"""

from __future__ import annotations

import re
from typing import Callable, Optional, Tuple

from .types import Thresholds

Signal = Tuple[int, Optional[str]]

# ── Vocabularies ─────────────────────────────────────────────────────

POWER_KEYWORDS: tuple[str, ...] = (
    # Architecture & design
    "architect", "architecture", "design pattern", "refactor", "restructure",
    "scalab", "microservice", "distributed", "system design",
    "restructurer", "conception",
    # Deep analysis
    "analyze", "analyse", "debug", "diagnose", "investigate", "root cause",
    "performance", "optimize", "bottleneck", "memory leak",
    "analyser", "débugger", "diagnostiquer", "enquêter", "cause racine",
    "optimiser", "goulot", "fuite mémoire",
    # Complex coding
    "implement", "algorithm", "data structure", "recursive", "dynamic programming",
    "concurrency", "async", "thread", "race condition", "deadlock",
    "security", "vulnerability", "exploit", "injection", "authentication",
    "implémenter", "algorithme", "structure de données", "récursif",
    "programmation dynamique", "concurrence", "authentification", "vulnérabilité",
    # Multi-step reasoning
    "step by step", "walk me through", "explain how", "compare and contrast",
    "pros and cons", "trade-off", "tradeoff", "best approach",
    "étape par étape", "explique-moi", "explique moi", "comment fonctionne",
    "compare", "avantages et inconvénients", "pour et contre", "meilleure approche",
    # Explanation requests
    "explain", "describe", "elaborate", "summarize", "summary",
    "explique", "expliquer", "décris", "décrire", "résume", "résumer", "résumé",
    # Why/how questions
    "why does", "why is", "how does", "how do", "how can",
    "pourquoi", "comment faire", "comment est-ce",
    # Research & synthesis
    "research", "synthesize", "comprehensive", "in-depth", "thorough",
    "literature review", "state of the art",
    "recherche", "synthétiser", "approfondi", "complet",
)

SIMPLE_KEYWORDS: tuple[str, ...] = (
    # Greetings
    "hello", "hi", "thanks", "thank you", "ok", "yes", "no",
    "salut", "bonjour", "coucou", "merci", "oui", "non", "ça va", "ca va",
    # Simple tasks
    "what time", "weather", "reminder", "status", "list",
    "send", "message", "email", "check",
    "quelle heure", "météo", "meteo", "rappel", "statut", "liste",
    "envoie", "envoyer", "message", "mail", "vérifie", "vérifier",
)

PROGRAMMING_LANGUAGES: tuple[str, ...] = (
    "typescript", "javascript", "python", "rust", "go", "java",
    "c++", "cpp", "solidity", "sql", "graphql",
)

# ── Pattern families ─────────────────────────────────────────────────

_CODE_BLOCK = re.compile(r"```.*?```", re.DOTALL)
_FENCE_OPEN = re.compile(r"```\w*\n?")
_FENCE_CLOSE = re.compile(r"```$")
_CODE_STATEMENT = re.compile(
    r"^[\t ]*(?:const|let|var|function|class|import|export|if|for|while|"
    r"return|async|await)\b",
    re.MULTILINE,
)

MULTI_STEP_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"first[\s,]+.*then", re.IGNORECASE),
    re.compile(r"step\s*\d", re.IGNORECASE),
    re.compile(r"\d+\.\s+\w+.*\n.*\d+\.\s+\w+"),
    re.compile(r"compare\s+\w+\s+(and|vs|versus|with)\s+\w+", re.IGNORECASE),
    re.compile(r"what\s+are\s+the\s+(differences?|similarities?)", re.IGNORECASE),
    re.compile(r"how\s+(would|should|can|do)\s+(you|i|we)\s+\w+.*\?", re.IGNORECASE),
    re.compile(r"d'abord[\s,]+.*ensuite", re.IGNORECASE),
    re.compile(r"premi[èe]rement[\s,]+.*puis", re.IGNORECASE),
    re.compile(r"étape\s*\d", re.IGNORECASE),
    re.compile(r"compare[rz]?\s+\w+\s+(et|avec|à|vs)\s+\w+", re.IGNORECASE),
    re.compile(
        r"quelles?\s+(sont|est)\s+(les?\s+)?(différences?|similitudes?)",
        re.IGNORECASE,
    ),
    re.compile(r"comment\s+(puis-je|peut-on|faire|est-ce)", re.IGNORECASE),
    re.compile(r"explique[\s-]*(moi|nous)?", re.IGNORECASE),
    re.compile(r"pourquoi\s+(est-ce|faut-il|ne\s+pas)", re.IGNORECASE),
    re.compile(r"r[ée]sume[\s-]*(moi|nous)?", re.IGNORECASE),
    re.compile(r"analyse[\s-]*(moi|nous)?\s+(ce|le|la|les|cet)", re.IGNORECASE),
    re.compile(r"d[ée]cris[\s-]*(moi|nous)?", re.IGNORECASE),
    re.compile(
        r"aide[\s-]*(moi|nous)?\s+[àa]\s+"
        r"(comprendre|d[ée]bugger|analyser|r[ée]soudre|trouver)",
        re.IGNORECASE,
    ),
    re.compile(r"help\s+me\s+(understand|debug|analyze|fix|find|solve)", re.IGNORECASE),
)

DEBUGGING_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"error:", re.IGNORECASE),
    re.compile(r"exception:", re.IGNORECASE),
    re.compile(r"traceback", re.IGNORECASE),
    re.compile(r"stack\s*trace", re.IGNORECASE),
    re.compile(r"failed\s+to", re.IGNORECASE),
    re.compile(r"doesn't\s+work", re.IGNORECASE),
    re.compile(r"not\s+working", re.IGNORECASE),
    re.compile(r"bug\b", re.IGNORECASE),
    re.compile(r"fix\s+(this|the|my)", re.IGNORECASE),
    re.compile(r"erreur\s*:", re.IGNORECASE),
    re.compile(r"ne\s+(fonctionne|marche)\s+(pas|plus)", re.IGNORECASE),
    re.compile(r"ça\s+(ne\s+)?(fonctionne|marche)\s+(pas|plus)", re.IGNORECASE),
    re.compile(r"corrige[rz]?\s+(ce|le|mon|cette|la|ma)", re.IGNORECASE),
    re.compile(r"répare[rz]?\s+(ce|le|mon|cette|la|ma)", re.IGNORECASE),
    re.compile(r"problème\s+(avec|de|dans)", re.IGNORECASE),
    re.compile(r"échoue\s+à", re.IGNORECASE),
    re.compile(r"a\s+échoué", re.IGNORECASE),
)

DEEP_QUESTION_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"\b(why|pourquoi)\b.*\?", re.IGNORECASE),
    re.compile(r"\bhow\s+(does|do|can|could|would|is|are)\b.*\?", re.IGNORECASE),
    re.compile(r"\bwhat\s+(is|are)\s+the\s+(difference|reason|cause|mechanism)", re.IGNORECASE),
    re.compile(r"\bqu'?est[- ]ce\s+que?\b", re.IGNORECASE),
    re.compile(r"\bcomment\s+(ça|cela)?\s*(fonctionne|marche)", re.IGNORECASE),
)

ACADEMIC_PATTERNS: tuple[re.Pattern, ...] = (
    re.compile(r"\b(theory|theorem|principle|concept|hypothesis)\b", re.IGNORECASE),
    re.compile(r"\b(théorie|théorème|principe|concept|hypothèse)\b", re.IGNORECASE),
    re.compile(r"\b(quantum|relativity|physics|mathematics|philosophy)\b", re.IGNORECASE),
    re.compile(r"\b(quantique|relativité|physique|mathématiques?|philosophie)\b", re.IGNORECASE),
    re.compile(r"\b(mécanique|thermodynamique|électromagnétisme)\b", re.IGNORECASE),
)

# ── Helpers ──────────────────────────────────────────────────────────


def count_keyword_matches(text: str, keywords: tuple[str, ...]) -> int:
    """Number of vocabulary entries found in ``text`` (case-insensitive)."""
    lower = text.lower()
    return sum(1 for kw in keywords if kw.lower() in lower)


def count_code_lines(text: str) -> int:
    """Non-blank lines inside fenced blocks plus bare code-statement lines."""
    total = 0
    for block in _CODE_BLOCK.findall(text):
        code = _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", block))
        total += sum(1 for line in code.split("\n") if line.strip())
    return total + len(_CODE_STATEMENT.findall(text))


def _any_match(patterns: tuple[re.Pattern, ...], text: str) -> bool:
    return any(p.search(text) for p in patterns)


def detect_multi_step_reasoning(text: str) -> bool:
    return _any_match(MULTI_STEP_PATTERNS, text)


def detect_debugging(text: str) -> bool:
    return _any_match(DEBUGGING_PATTERNS, text)


# ── Detectors ────────────────────────────────────────────────────────


def _signal_length(text: str, thresholds: Thresholds) -> Signal:
    length = len(text)
    if length <= thresholds.min_length_for_power:
        return 0, None
    points = min(20, (length - thresholds.min_length_for_power) // 100)
    return points, (f"long_message:{length}chars" if points > 5 else None)


def _signal_code(text: str, thresholds: Thresholds) -> Signal:
    lines = count_code_lines(text)
    if lines > thresholds.min_code_lines_for_power:
        return min(25, (lines - thresholds.min_code_lines_for_power) // 2), f"code:{lines}lines"
    if lines > 10:
        return 5, f"code:{lines}lines"
    return 0, None


def _signal_power_keywords(text: str, thresholds: Thresholds) -> Signal:
    matches = count_keyword_matches(text, POWER_KEYWORDS)
    if not matches:
        return 0, None
    return min(40, matches * 10), f"power_keywords:{matches}"


def _signal_simple_keywords(text: str, thresholds: Thresholds) -> Signal:
    """Negative points, only when no power keyword is present."""
    matches = count_keyword_matches(text, SIMPLE_KEYWORDS)
    if not matches or count_keyword_matches(text, POWER_KEYWORDS):
        return 0, None
    return -min(10, matches * 3), f"simple_keywords:{matches}"


def _signal_multi_step(text: str, thresholds: Thresholds) -> Signal:
    if detect_multi_step_reasoning(text):
        return 30, "multi_step_reasoning"
    return 0, None


def _signal_debugging(text: str, thresholds: Thresholds) -> Signal:
    if detect_debugging(text):
        return 25, "debugging"
    return 0, None


def _signal_deep_question(text: str, thresholds: Thresholds) -> Signal:
    if len(text) > 30 and _any_match(DEEP_QUESTION_PATTERNS, text):
        return 15, "deep_question"
    return 0, None


def _signal_academic(text: str, thresholds: Thresholds) -> Signal:
    if _any_match(ACADEMIC_PATTERNS, text):
        return 15, "academic_topic"
    return 0, None


def _signal_programming(text: str, thresholds: Thresholds) -> Signal:
    matches = count_keyword_matches(text, PROGRAMMING_LANGUAGES)
    if not matches:
        return 0, None
    return min(5, matches * 2), f"programming:{matches}langs"


def _signal_questions(text: str, thresholds: Thresholds) -> Signal:
    count = text.count("?")
    if count <= 2:
        return 0, None
    return min(10, count * 2), f"questions:{count}"


# ── Detector registry ────────────────────────────────────────────────

SIGNAL_DETECTORS: dict[str, Callable[[str, Thresholds], Signal]] = {
    "length": _signal_length,
    "code_volume": _signal_code,
    "power_keywords": _signal_power_keywords,
    "simple_keywords": _signal_simple_keywords,
    "multi_step_reasoning": _signal_multi_step,
    "debugging": _signal_debugging,
    "deep_question": _signal_deep_question,
    "academic_topic": _signal_academic,
    "programming_languages": _signal_programming,
    "question_density": _signal_questions,
}
