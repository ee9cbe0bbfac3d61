import re

import pytest

from wibot.formatting import (
    BULLET,
    escape_markdown_v2,
    escape_non_formatting_chars,
    format_response_content,
    process_markdown_formatting,
)

_RESERVED = set("_*[]()~`>#+-=|{}.!'\"?$&,:;\\")


def _unescape(text: str) -> str:
    return re.sub(r"\\(.)", r"\1", text, flags=re.DOTALL)


def _unescaped_occurrences(text: str, char: str) -> int:
    count = 0
    index = 0
    while index < len(text):
        if text[index] == "\\":
            index += 2
            continue
        if text[index] == char:
            count += 1
        index += 1
    return count


# ===========================================================================
# Escaper
# ===========================================================================


class TestEscapeMarkdownV2:
    def test_brackets_and_emphasis(self):
        escaped = escape_markdown_v2("Hello *world* with [link] and (parens)")
        assert escaped == r"Hello \*world\* with \[link\] and \(parens\)"

    def test_every_reserved_character(self):
        escaped = escape_markdown_v2("._*[]()~`>#+-=|{}.!")
        assert escaped == r"\.\_\*\[\]\(\)\~\`\>\#\+\-\=\|\{\}\.\!"

    def test_punctuation(self):
        assert escape_markdown_v2("What's this? It's a test!") == r"What\'s this\? It\'s a test\!"

    def test_backslash_is_escaped(self):
        assert escape_markdown_v2("a\\b") == "a\\\\b"

    def test_plain_text_passes_through(self):
        assert escape_markdown_v2("plain text 123 é 🤖") == "plain text 123 é 🤖"

    def test_empty(self):
        assert escape_markdown_v2("") == ""


class TestEscapeNonFormattingChars:
    def test_delimiters_are_left_alone(self):
        assert escape_non_formatting_chars("a*b_c`d.") == "a*b_c`d\\."

    def test_currency_and_commas(self):
        assert escape_non_formatting_chars("$50,000") == r"\$50\,000"


@pytest.mark.parametrize(
    "text",
    [
        "Bitcoin is at $50,000.",
        "What's the weather in New York?",
        "a+b=c; {x|y} <tag> #1 ~approx~ \"quoted\" & more: done!",
        "back\\slash [link](http://example.com)",
        "",
    ],
)
def test_escaped_text_has_no_bare_reserved_chars(text):
    for escape in (escape_markdown_v2, escape_non_formatting_chars):
        escaped = escape(text)
        assert _unescape(escaped) == text
        assert len(escaped) >= len(text)
        for char in _RESERVED - {"\\"}:
            assert _unescaped_occurrences(escaped, char) == 0


# ===========================================================================
# Tokenizer
# ===========================================================================


class TestProcessMarkdownFormatting:
    def test_balanced_bold_is_kept(self):
        output = process_markdown_formatting("a *bold.* word")
        assert output == r"a *bold\.* word"
        assert _unescaped_occurrences(output, "*") == 2

    def test_bold_and_code_are_kept(self):
        text = "Here is *bold* and `code` text"
        assert process_markdown_formatting(text) == text

    def test_italic_is_kept(self):
        assert process_markdown_formatting("_slanted_") == "_slanted_"

    def test_double_delimiter_run_is_kept_whole(self):
        assert process_markdown_formatting("**strong**") == "**strong**"

    def test_unmatched_delimiter_is_escaped(self):
        output = process_markdown_formatting("*lonely")
        assert output == r"\*lonely"
        assert _unescaped_occurrences(output, "*") == 0

    def test_only_the_dangling_span_is_escaped(self):
        assert process_markdown_formatting("*a* and *b") == r"*a* and \*b"

    def test_other_kind_inside_open_span_is_literal(self):
        assert process_markdown_formatting("*snake_case value*") == r"*snake\_case value*"

    def test_mismatched_run_escapes_each_character(self):
        assert process_markdown_formatting("`a __b`") == r"`a \_\_b`"

    def test_plain_text_is_escaped(self):
        assert process_markdown_formatting("Price: $3,000 (est.)") == r"Price\: \$3\,000 \(est\.\)"

    def test_empty(self):
        assert process_markdown_formatting("") == ""

    def test_apostrophe_and_parentheses(self):
        output = process_markdown_formatting("Here's a *bold* statement with some (parentheses)")
        assert output == r"Here\'s a *bold* statement with some \(parentheses\)"


# ===========================================================================
# Reflow
# ===========================================================================


class TestFormatResponseContent:
    def test_list_block_with_heading_line(self):
        formatted = format_response_content("Items:\n- First item\n- *Second* item")
        assert formatted == f"Items\\:\n{BULLET} First item\n{BULLET} *Second* item"

    def test_prices_scenario(self):
        formatted = format_response_content("Prices:\n\n- BTC $50,000\n- ETH $3,000")
        assert formatted == f"Prices\\:\n\n{BULLET} BTC \\$50\\,000\n{BULLET} ETH \\$3\\,000"

    def test_every_line_a_list_item(self):
        formatted = format_response_content("- one\n* two\n  - three")
        lines = formatted.split("\n")
        assert lines == [f"{BULLET} one", f"{BULLET} two", f"{BULLET} three"]

    def test_multiple_paragraphs(self):
        formatted = format_response_content("First paragraph\n\nList:\n- Item 1\n- *Item* 2\n\nLast paragraph.")
        paragraphs = formatted.split("\n\n")
        assert paragraphs[0] == "First paragraph"
        assert paragraphs[1] == f"List\\:\n{BULLET} Item 1\n{BULLET} *Item* 2"
        assert paragraphs[2] == "Last paragraph\\."

    def test_plain_paragraph_is_one_unit(self):
        assert format_response_content("a *b\nc* d") == "a *b\nc* d"

    def test_list_lines_are_tokenized_independently(self):
        formatted = format_response_content("- *open\n- close*")
        assert formatted == f"{BULLET} \\*open\n{BULLET} close\\*"

    def test_only_newline_breaks_lines(self):
        assert format_response_content("- a\u2028b") == f"{BULLET} a\u2028b"

    def test_crlf_line_endings(self):
        assert format_response_content("- a\r\n- b") == f"{BULLET} a\n{BULLET} b"

    def test_empty(self):
        assert format_response_content("") == ""
