# utils/text_processing.py
import re

# Word characters on either side of a match mean it is part of a longer word.
_BOUNDARY_START = r"(?<!\w)"
_BOUNDARY_END = r"(?!\w)"
_POSSESSIVE_SUFFIX = r"['’]s"
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_entity_name(text: str) -> str:
    """
    Clean an entity name for matching.

    Normalizes smart quotes to straight quotes, collapses internal whitespace
    and strips the ends.
    """
    if not isinstance(text, str):
        return str(text) if text is not None else ""
    text = text.replace("’", "'").replace("‘", "'").replace("“", '"').replace("”", '"')
    return _WHITESPACE_RE.sub(" ", text).strip()


def split_name_tokens(name: str) -> list[str]:
    return [token for token in _WHITESPACE_RE.split(name.strip()) if token]


def whole_word_regex(phrase: str, possessive: bool = False) -> str:
    """Return a regex source matching `phrase` as a whole word (or its possessive).

    Special characters in `phrase` are escaped. Boundaries are lookarounds so
    phrases that start or end with punctuation (`Dr.`) still match.
    """
    body = re.escape(phrase)
    if possessive:
        body += _POSSESSIVE_SUFFIX
    return f"{_BOUNDARY_START}{body}{_BOUNDARY_END}"


def replace_whole_word(text: str, old: str, new: str) -> tuple[str, int]:
    """Replace `old` with `new` as a whole word, case-sensitively.

    Possessives are rewritten first (`Ann's` -> `Maria's`) so the apostrophe
    form is preserved, then bare occurrences.

    Returns:
        The new text and the number of replacements made.
    """
    if not text or not old:
        return text, 0
    text, possessive_count = re.subn(
        whole_word_regex(old, possessive=True),
        lambda m: new + m.group(0)[len(old):],
        text,
    )
    text, bare_count = re.subn(whole_word_regex(old), lambda _m: new, text)
    return text, possessive_count + bare_count


def truncate_for_log(s: str, limit: int = 300) -> str:
    """Return a truncated string for logging purposes."""
    if not isinstance(s, str):
        return ""
    return s if len(s) <= limit else s[: limit - 3] + "..."
