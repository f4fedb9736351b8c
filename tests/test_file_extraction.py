import pytest

from sitegen.llm_parsing import extract_files, language_for_path, split_completion


THREE_FILES = """I built a small site with a stylesheet and a script.

FILE: index.html
```html
<h1>Hi</h1>
```

FILE: style.css
```css
body { margin: 0; }
```

FILE: app.js
```javascript
console.log("x");
```
That's everything."""


def test_each_marked_block_becomes_a_record_in_order():
    files = extract_files(THREE_FILES)
    assert [f.path for f in files] == ["index.html", "style.css", "app.js"]
    assert [f.language for f in files] == ["html", "css", "javascript"]
    assert files[0].content == "<h1>Hi</h1>"
    assert files[1].content == "body { margin: 0; }"
    assert files[2].content == 'console.log("x");'


def test_missing_fence_language_is_inferred_from_extension():
    files = extract_files("FILE: styles/main.css\n```\nbody{}\n```")
    assert len(files) == 1
    assert files[0].path == "styles/main.css"
    assert files[0].language == "css"


def test_declared_language_is_lower_cased():
    files = extract_files("FILE: index.html\n```HTML\n<p>x</p>\n```")
    assert files[0].language == "html"


def test_truncated_final_file_runs_to_end_of_text():
    text = "FILE: index.html\n```html\n<div>one</div>\n\nFILE: about.html\n```html\n<div>two"
    files = extract_files(text)
    assert [f.path for f in files] == ["index.html", "about.html"]
    assert files[0].content == "<div>one</div>"
    assert files[1].content == "<div>two"


def test_trailing_fence_remnant_is_trimmed():
    files = extract_files("FILE: index.html\n```html\n<p>x</p>\n``")
    assert files[0].content == "<p>x</p>"


def test_decorated_markers_are_recognised():
    text = "**FILE: index.html**\n```html\n<p>a</p>\n```\n\n### FILE: `about.html`\n```html\n<p>b</p>\n```"
    files = extract_files(text)
    assert [f.path for f in files] == ["index.html", "about.html"]


def test_marker_keyword_is_case_sensitive():
    # No real marker and no ```html fence, so nothing is recoverable
    assert extract_files("File: index.html\n```\n<p>a</p>\n```") == []


def test_empty_blocks_are_discarded():
    text = "FILE: empty.html\n```html\n```\nFILE: index.html\n```html\n<p>x</p>\n```"
    files = extract_files(text)
    assert [f.path for f in files] == ["index.html"]


def test_duplicate_paths_are_kept_in_order():
    text = "FILE: index.html\n```html\n<p>1</p>\n```\nFILE: index.html\n```html\n<p>2</p>\n```"
    files = extract_files(text)
    assert [f.content for f in files] == ["<p>1</p>", "<p>2</p>"]


def test_bare_html_fences_get_fallback_names():
    text = (
        "Here you go\n```html\n<p>1</p>\n```\nsome text\n"
        "```html\n<p>2</p>\n```\n```html\n<p>3</p>\n```\n```html\n<p>4</p>\n```"
    )
    files = extract_files(text)
    assert [f.path for f in files] == ["index.html", "about.html", "contact.html", "page4.html"]
    assert files[3].content == "<p>4</p>"
    assert all(f.language == "html" for f in files)


def test_bare_fences_ignored_when_markers_exist():
    text = "FILE: index.html\n```html\n<p>main</p>\n```\n\n```html\n<p>stray</p>\n```"
    files = extract_files(text)
    assert [f.path for f in files] == ["index.html"]


def test_plain_prose_yields_nothing():
    assert extract_files("Sorry, I can only describe the site in words.") == []
    assert extract_files("") == []


def test_split_completion_returns_prose_remainder():
    text = "Intro text.\n\nFILE: index.html\n```html\n<p>x</p>\n```\n\nOutro."
    files, remainder = split_completion(text)
    assert len(files) == 1
    assert "Intro text." in remainder
    assert "Outro." in remainder
    assert "<p>x</p>" not in remainder
    assert "FILE:" not in remainder


@pytest.mark.parametrize(
    "path, declared, expected",
    [
        ("app.js", None, "javascript"),
        ("data.JSON", "", "json"),
        ("README", None, "html"),
        ("notes.md", None, "markdown"),
        ("theme.css", "SCSS", "scss"),
        ("page.unknown", None, "html"),
    ],
)
def test_language_for_path(path, declared, expected):
    assert language_for_path(path, declared) == expected
