import pytest

from spamgate.signals.links import count_links, find_links
from spamgate.signals.sanitize import sanitize_content


# ============================================================
# LINK COUNTING
# ============================================================

@pytest.mark.parametrize(
    "text, expected",
    [
        ("No links here, just a thoughtful comment.", 0),
        ("See https://example.com for details", 1),
        ("http://a.com and https://b.org/path?q=1", 2),
        ("Visit www.cheap-pills.biz today", 1),
        ("Bare domain example.org/page counts too", 1),
        ("Subdomains like shop.example.co.uk work", 1),
        ("ftp://files.example.net/archive.zip", 1),
        ("visit www.cheap-pills.ai now", 1),
        ("see example.edu/path", 1),
        ("go to shop.example.tech", 1),
        ("new gTLDs like buy-now.online and cheap.pharmacy", 2),
    ],
)
def test_count_links(text, expected):
    assert count_links(text) == expected


def test_duplicate_links_are_not_deduplicated():
    text = "https://spam.com https://spam.com https://spam.com"
    assert count_links(text) == 3


def test_scheme_link_is_counted_once():
    assert find_links("go to https://www.example.com/x now") == ["https://www.example.com/x"]


def test_email_addresses_are_not_links():
    assert count_links("Mail me at jane.doe@example.com") == 0


def test_common_dotted_words_are_not_links():
    assert count_links("I wrote it in Node.js and saved report.pdf, e.g. yesterday") == 0


def test_www_prefix_counts_whatever_the_suffix():
    assert count_links("grab it at www.example.js today") == 1


def test_empty_or_non_string_input():
    assert count_links("") == 0
    assert count_links(None) == 0


# ============================================================
# SANITIZATION
# ============================================================

def test_empty_content_is_rejected():
    result = sanitize_content("   ")
    assert result.rejected is True
    assert result.reject_reason == "Empty content"


@pytest.mark.parametrize(
    "payload",
    [
        "<script>alert(1)</script>",
        "click javascript:alert(1)",
        '<img src=x onerror="steal()">',
        "data: text/html;base64,AAAA",
        "<iframe src='x'>",
    ],
)
def test_dangerous_markup_is_rejected(payload):
    result = sanitize_content(payload)
    assert result.rejected is True
    assert result.reject_reason == "Contains potentially dangerous content"


def test_whitespace_and_control_characters_are_normalized():
    result = sanitize_content("  hello\x00 world\n\n\n\n\n\nbye\t!  ")
    assert result.rejected is False
    assert result.content == "hello world\n\n\nbye\t!"


def test_long_content_is_truncated_at_word_boundary():
    text = ("word " * 100).strip()
    result = sanitize_content(text, max_length=52)

    assert result.truncated is True
    assert result.content.endswith("…")
    assert not result.content[:-1].endswith(" ")
    assert len(result.content) <= 53


def test_links_are_counted_before_truncation():
    text = "a" * 60 + " https://late-link.com"
    result = sanitize_content(text, max_length=50)

    assert result.truncated is True
    assert "late-link" not in result.content
    assert result.link_count == 1


@pytest.mark.parametrize(
    "payload",
    [
        "hi <scr\x00ipt>alert(1)</script>",
        "<ifr\x07ame src='x'>",
        "java\x1bscript:alert(1)",
        "<img src=x on\x00error=steal()>",
    ],
)
def test_markup_split_by_control_characters_is_rejected(payload):
    result = sanitize_content(payload)
    assert result.rejected is True
    assert result.content == ""


def test_only_control_characters_is_empty():
    result = sanitize_content("\x00\x01\x02")
    assert result.rejected is True
    assert result.reject_reason == "Empty content"


@pytest.mark.parametrize(
    "text",
    [
        "if conditions = true then it works",
        "set onboarding= done in the config",
        "x < y and option = 3",
    ],
)
def test_plain_text_assignments_are_not_markup(text):
    assert sanitize_content(text).rejected is False
