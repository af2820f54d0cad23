"""Улучшение названий товаров, пришедших со страниц поставщиков.

Названия с маркетплейсов перегружены: рекламные слова, повторы,
КАПС, скобки с кодами. Функции модуля чистые и детерминированные,
их можно вызывать повторно на уже очищенном названии.
"""

import re

MAX_TITLE_LENGTH = 120

# Рекламный мусор, не описывающий сам товар.
_NOISE_WORDS: tuple[str, ...] = (
    "hot sale",
    "best seller",
    "bestseller",
    "new arrival",
    "free shipping",
    "dropshipping",
    "wholesale",
    "factory price",
    "factory direct",
    "high quality",
    "2024",
    "2025",
    "2026",
)

_NOISE_PATTERN = re.compile(
    r"\b(" + "|".join(re.escape(w) for w in _NOISE_WORDS) + r")\b",
    re.IGNORECASE,
)
_BRACKETS = re.compile(r"[\[【(][^\]】)]*[\]】)]")
_SEPARATORS = re.compile(r"\s*[|/,;]+\s*")
_SPACES = re.compile(r"\s+")

# Слова, которые не капитализируются в середине названия.
_LOWERCASE_WORDS = frozenset({"and", "or", "for", "with", "of", "the", "in", "to"})


def _smart_case(word: str) -> str:
    if any(ch.isdigit() for ch in word):
        return word.upper() if len(word) <= 6 else word
    if word.isupper() and len(word) <= 4:
        # USB, LED, RGB, 4K
        return word
    return word[:1].upper() + word[1:].lower()


def improve_title(title: str | None) -> str:
    """Очищает и форматирует название товара.

    Удаляет рекламные слова и содержимое скобок, схлопывает
    разделители и пробелы, убирает повторы слов, приводит регистр
    к "Title Case" с сохранением аббревиатур и обрезает до
    MAX_TITLE_LENGTH по границе слова.

    Args:
        title: Исходное название.

    Returns:
        Улучшенное название. Если после очистки ничего не осталось,
        возвращается исходное название без лишних пробелов.
    """
    if not title:
        return ""

    original = _SPACES.sub(" ", title).strip()

    cleaned = _BRACKETS.sub(" ", original)
    cleaned = _NOISE_PATTERN.sub(" ", cleaned)
    cleaned = _SEPARATORS.sub(" ", cleaned)
    cleaned = _SPACES.sub(" ", cleaned).strip(" -–")

    seen: set[str] = set()
    words: list[str] = []
    for index, word in enumerate(cleaned.split(" ")):
        key = word.lower()
        if not key or key in seen:
            continue
        seen.add(key)
        if index > 0 and key in _LOWERCASE_WORDS:
            words.append(key)
        else:
            words.append(_smart_case(word))

    improved = " ".join(words)
    if not improved:
        return original

    if len(improved) > MAX_TITLE_LENGTH:
        cut = improved[:MAX_TITLE_LENGTH]
        if " " in cut:
            cut = cut[: cut.rfind(" ")]
        improved = cut

    return improved
