"""
Text processing utilities for the LLM layer.

Transcripts are long and mostly Chinese; truncation must cut at a sentence
end so the judgment model never sees a half utterance.
"""

import re

# Latin terminators need trailing whitespace; CJK terminators stand alone.
_SENTENCE_END_RE = re.compile(r"[.!?](?:\s|$)|[。！？；]|\n")


def truncate_at_sentence_boundary(text: str, max_chars: int) -> str:
    """
    Truncate text at the nearest sentence boundary before max_chars.

    Recognises ``. ! ?`` followed by whitespace, the full-width
    ``。！？；`` marks and line breaks (one utterance per line is the usual
    transcript layout).

    Args:
        text: Text to truncate
        max_chars: Maximum character count

    Returns:
        Truncated text ending at a sentence boundary, or hard-truncated if
        no boundary is found within the limit.

    Examples:
        >>> truncate_at_sentence_boundary("Hello. World. Test.", 15)
        'Hello. World.'
        >>> truncate_at_sentence_boundary("客户：你好。客服：您好，请讲。", 10)
        '客户：你好。'
    """
    if len(text) <= max_chars:
        return text

    segment = text[:max_chars]
    matches = list(_SENTENCE_END_RE.finditer(segment))

    if matches:
        cutoff = matches[-1].end()
        # Drop the trailing whitespace / newline that closed the sentence
        while cutoff > 0 and segment[cutoff - 1].isspace():
            cutoff -= 1
        if cutoff > 0:
            return text[:cutoff]

    # No sentence boundary - avoid cutting a word in half if a space is close
    last_space = segment.rfind(" ")
    if last_space > max_chars * 0.8:
        return text[:last_space]

    return text[:max_chars]


def normalize_whitespace(text: str) -> str:
    """Collapse runs of spaces/tabs and blank lines; keep single line breaks."""
    lines = (re.sub(r"[ \t　]+", " ", line).strip() for line in text.splitlines())
    return "\n".join(line for line in lines if line)
