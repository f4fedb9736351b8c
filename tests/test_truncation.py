import pytest

from sitegen.truncation import has_unbalanced_fences, is_truncated, tag_imbalance, tail_signals


COMPLETE_PAGE = """FILE: index.html
```html
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <link rel="stylesheet" href="style.css">
    <title>Done</title>
</head>
<body>
    <img src="a.png" alt="">
    <br>
    <p>All good</p>
</body>
</html>
```"""


def test_empty_text_is_never_truncated():
    assert is_truncated("") is False
    assert is_truncated("   \n\t\n") is False


def test_complete_page_is_not_truncated():
    assert is_truncated(COMPLETE_PAGE) is False
    assert tag_imbalance(COMPLETE_PAGE) == 0


@pytest.mark.parametrize(
    "tail, signal",
    [
        ('<div class="hero', "unclosed_tag"),
        ("```html", "open_fence"),
        ('<a href="https://example.com', "unclosed_attribute"),
        ("function init() {", "open_block"),
        ("if (menuOpen) { toggle();", "open_block"),
        ("const config = {", "trailing_brace"),
    ],
)
def test_last_line_cutoff_signals(tail, signal):
    text = "Intro prose that is fine.\n\n" + tail
    assert signal in tail_signals(text)
    assert is_truncated(text) is True


def test_signals_only_look_at_last_non_empty_line():
    text = '<div class="hero\n<p>closed later</p>\n\n'
    assert tail_signals(text) == []


def test_class_attribute_line_is_not_a_block_opener():
    assert tail_signals('<section class="features">') == []


def test_void_and_self_closing_tags_do_not_count_as_open():
    many_voids = "<div>" + "<img src='x.png'><br><hr/><input type='text'>" * 10 + "</div>"
    assert tag_imbalance(many_voids) == 0
    assert is_truncated(many_voids) is False


def test_imbalance_over_threshold_is_truncated():
    text = "<html><body><main><section><div><p>text</p>\nstill writing"
    assert tag_imbalance(text) == 5
    assert is_truncated(text) is True


def test_imbalance_at_threshold_is_tolerated():
    text = "<html><body><main><p>text</p>\nfine"
    assert tag_imbalance(text) == 3
    assert is_truncated(text) is False


def test_odd_fence_count_is_truncated():
    text = "FILE: a.css\n```css\nbody { color: red; }\n```\n\nFILE: b.js\n```javascript\nconsole.log(1);"
    assert has_unbalanced_fences(text) is True
    assert is_truncated(text) is True


def test_even_fence_count_is_balanced():
    assert has_unbalanced_fences(COMPLETE_PAGE) is False


def test_short_reference_cases():
    assert is_truncated('<div class="foo') is True
    assert is_truncated("<p>Hello</p>") is False
