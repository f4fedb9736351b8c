import pytest

from sitegen import catalog
from sitegen.llm_parsing import (
    MIN_DESCRIPTION_LENGTH,
    clean_description,
    default_context,
    fallback_description,
    is_acceptable_description,
    sanitize_description,
)
from sitegen.models import DescriptionContext


def _corporate_context(file_count=4):
    tpl = catalog.get_template("business-corporate")
    return DescriptionContext(
        template_name=tpl.name,
        category=tpl.category,
        features=list(tpl.features),
        pages=list(tpl.pages),
        file_count=file_count,
        single_page=False,
    )


GOOD_PROSE = "A calm, responsive landing page for a local bakery with a menu section and a contact form."


def test_clean_prose_is_kept_verbatim():
    assert sanitize_description(GOOD_PROSE) == GOOD_PROSE


def test_generated_files_remainder_uses_fallback():
    ctx = _corporate_context()
    out = sanitize_description("Generated Files: index.html, style.css", ctx)
    assert out == fallback_description(ctx)
    assert out.startswith("I've generated a complete multi-page corporate business")


def test_banned_opener_is_rejected():
    text = "Here is your website, with a responsive layout and a contact form included."
    assert len(text) >= MIN_DESCRIPTION_LENGTH
    assert is_acceptable_description(text) is False
    assert sanitize_description(text) == fallback_description()


def test_opener_check_matches_whole_words_only():
    text = "Theme-aware layout with a hero, a menu and a contact form for the bakery."
    assert sanitize_description(text) == text


def test_short_text_is_rejected():
    assert sanitize_description("Done!") == fallback_description()


def test_css_rules_and_custom_properties_are_stripped():
    text = (
        "A bold portfolio with a project grid and a contact page for clients.\n\n"
        ".hero {\n  color: red;\n}\n:root {\n  --primary: #fff;\n}"
    )
    assert sanitize_description(text) == "A bold portfolio with a project grid and a contact page for clients."


def test_prose_lines_starting_with_hash_or_dot_are_kept():
    text = (
        "A cozy site for the cafe with a menu, opening hours and a map for every visitor.\n"
        "Colors: warm browns and cream;\n"
        "#1 coffee shop in town\n"
        ".NET developer portfolio"
    )
    assert sanitize_description(text) == text


def test_selector_lines_before_a_brace_are_stripped():
    prose = "A bold portfolio with a project grid and a contact page for clients."
    assert clean_description(prose + "\n\n.hero .title\n{\n  color: red;\n}") == prose
    assert clean_description(prose + "\n\n.card > a {\n  color: red;") == prose
    assert clean_description(prose + "\n\n#nav\n  display: flex;") == prose


def test_fenced_and_dangling_code_is_stripped():
    prose = "A dashboard with charts and a user table built for your analytics team."
    assert clean_description(prose + "\n```css\nbody{}\n```") == prose
    assert clean_description(prose + "\n```html\n<div>cut off") == prose


def test_trailing_generated_files_summary_is_stripped():
    prose = "A shop with a product grid, a cart page and checkout for your customers."
    text = prose + "\n\n**Generated Files:**\n- index.html\n- cart.html"
    assert sanitize_description(text) == prose


def test_trailing_file_bullets_are_stripped():
    prose = "A shop with a product grid, a cart page and checkout for your customers."
    text = prose + "\n\n- `index.html` home page\n- `cart.html` shopping cart"
    assert clean_description(text) == prose


def test_newline_runs_are_collapsed():
    text = "First paragraph about the site layout.\n\n\n\n\nSecond paragraph about the colors."
    assert clean_description(text) == "First paragraph about the site layout.\n\nSecond paragraph about the colors."


@pytest.mark.parametrize(
    "text",
    [
        GOOD_PROSE,
        "Generated Files: index.html, style.css",
        "Here you go",
        "A bold portfolio.\n\n.hero {\n  color: red;\n}\n\n- index.html",
        "",
    ],
)
def test_sanitize_is_idempotent(text):
    ctx = _corporate_context()
    once = sanitize_description(text, ctx)
    assert sanitize_description(once, ctx) == once


def test_fallback_lists_pages_for_multi_page_sites():
    out = fallback_description(_corporate_context(file_count=4))
    assert "**Template Used:** Corporate Business" in out
    assert "**Files Created:** 4 files" in out
    assert "- Contact Forms" in out
    assert "- **About** (about.html): company-story, team, values, history" in out
    assert "```" not in out and "{" not in out


def test_fallback_for_single_page_sites():
    out = fallback_description(default_context(file_count=1))
    assert out.startswith("I've generated a complete single-page landing page")
    assert "**Files Created:** 1 file\n" in out
    assert "- Single responsive page with all sections" in out
