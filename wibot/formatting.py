"""Telegram MarkdownV2 transcoding for model-generated prose.

Answers from the model use informal markdown: ``*bold*``, ``_italic_``,
`` `code` `` and ``-``/``*`` list items. Telegram rejects any reserved
character that is not escaped, so everything outside a genuine emphasis span
goes through an escaper here.
"""

from __future__ import annotations

import enum

BULLET = "•"

_DELIMITERS = frozenset("*_`")
_LIST_MARKERS = ("-", "*")

# Reserved characters that never start an emphasis span.
_NON_FORMATTING_CHARS = frozenset("[]()~>#+-=|{}.!'\"?$&,:;\\")
_MARKDOWN_V2_CHARS = _NON_FORMATTING_CHARS | _DELIMITERS


class FormatKind(enum.Enum):
    """Emphasis span that can be open while tokenizing."""

    BOLD = "*"
    ITALIC = "_"
    CODE = "`"


def _escape(text: str, reserved: frozenset[str]) -> str:
    return "".join(f"\\{char}" if char in reserved else char for char in text)


def escape_markdown_v2(text: str) -> str:
    """Escape every MarkdownV2 reserved character, emphasis delimiters included."""

    return _escape(text, _MARKDOWN_V2_CHARS)


def escape_non_formatting_chars(text: str) -> str:
    """Escape reserved characters except the emphasis delimiters ``* _ `````."""

    return _escape(text, _NON_FORMATTING_CHARS)


def process_markdown_formatting(text: str) -> str:
    """Escape ``text`` while keeping balanced emphasis delimiters live.

    A run of identical delimiters opens a span when nothing is open and closes
    the span of the same kind. A run of a different kind while a span is open
    is literal and every character of it is escaped. Telegram rejects an entity
    without an end, so the opening run of a span still open at the end of the
    text is escaped too.
    """

    result: list[str] = []
    pending: list[str] = []
    open_kind: FormatKind | None = None
    open_at = 0
    index = 0
    length = len(text)

    while index < length:
        char = text[index]
        if char not in _DELIMITERS:
            pending.append(char)
            index += 1
            continue

        run_end = index + 1
        while run_end < length and text[run_end] == char:
            run_end += 1
        run = text[index:run_end]
        index = run_end

        if pending:
            result.append(escape_non_formatting_chars("".join(pending)))
            pending.clear()

        kind = FormatKind(char)
        if open_kind is None:
            open_kind = kind
            open_at = len(result)
            result.append(run)
        elif open_kind is kind:
            open_kind = None
            result.append(run)
        else:
            result.append(f"\\{char}" * len(run))

    if pending:
        result.append(escape_non_formatting_chars("".join(pending)))

    if open_kind is not None:
        dangling = result[open_at]
        result[open_at] = f"\\{open_kind.value}" * len(dangling)

    return "".join(result)


def _is_list_line(line: str) -> bool:
    return line.strip().startswith(_LIST_MARKERS)


def _format_paragraph(paragraph: str) -> str:
    lines = paragraph.split("\n")
    if len(lines) > 1 and not lines[-1]:
        lines.pop()
    lines = [line.removesuffix("\r") for line in lines]
    if not any(_is_list_line(line) for line in lines):
        return process_markdown_formatting(paragraph)

    formatted: list[str] = []
    for line in lines:
        if _is_list_line(line):
            content = line.strip().lstrip("".join(_LIST_MARKERS)).strip()
            formatted.append(f"{BULLET} {process_markdown_formatting(content)}")
        else:
            formatted.append(process_markdown_formatting(line))
    return "\n".join(formatted)


def format_response_content(content: str) -> str:
    """Reflow blank-line separated paragraphs, turning list blocks into bullets."""

    return "\n\n".join(_format_paragraph(paragraph) for paragraph in content.split("\n\n"))
