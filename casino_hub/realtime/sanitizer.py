"""
Sanitization of untrusted client text.

Chat text and game names are escaped so they render as plain text in any
HTML client. Nicknames are stripped of markup-significant characters
instead, since they are also used for case-insensitive uniqueness checks.
"""

import html
import re

NICKNAME_MIN_LENGTH = 2
NICKNAME_MAX_LENGTH = 24

_WHITESPACE_RUN = re.compile(r"\s+")
_NICKNAME_FORBIDDEN_CHARS = re.compile(r"[<>\"'/\\`]")


def sanitize_text(raw: object, max_length: int) -> str:
    """
    Normalize and escape free text.

    Trims, collapses whitespace runs, truncates to max_length and escapes
    & < > " ' as HTML entities. Non-string input yields "".
    """
    if not isinstance(raw, str):
        return ""
    text = _WHITESPACE_RUN.sub(" ", raw.strip())
    return html.escape(text[:max_length], quote=True)


def sanitize_nickname(raw: object) -> str:
    """
    Normalize a requested nickname.

    The result may be shorter than NICKNAME_MIN_LENGTH; callers validate it
    with is_valid_nickname.
    """
    if not isinstance(raw, str):
        return ""
    nickname = raw.strip()[:NICKNAME_MAX_LENGTH]
    nickname = _NICKNAME_FORBIDDEN_CHARS.sub("", nickname)
    return _WHITESPACE_RUN.sub(" ", nickname).strip()


def is_valid_nickname(nickname: str) -> bool:
    return NICKNAME_MIN_LENGTH <= len(nickname) <= NICKNAME_MAX_LENGTH
