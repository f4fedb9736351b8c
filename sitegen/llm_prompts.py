from __future__ import annotations

from typing import Iterable, List

from sitegen.models import FileRecord, GenerationRequest, WebsiteTemplate

CONTINUATION_TAIL_LINES = 10

_FILE_FORMAT_HINT = """
REQUIRED RESPONSE FORMAT:
1. Start with a brief description of what you built (plain prose, no code).
2. Then emit EVERY file using this exact format:

FILE: index.html
```html
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Page Title</title>
    <script src="https://cdn.tailwindcss.com"></script>
</head>
<body>
    <!-- content -->
</body>
</html>
```

Never put code in the description. Every file starts with a "FILE: <path>" line followed by a fenced block.
""".strip()

_DESIGN_RULES = """
DESIGN EXCELLENCE REQUIREMENTS:
- Include the Tailwind CSS CDN in every HTML head and use utility classes for all styling.
- Use gradients, rounded cards with shadows, generous spacing and hover transitions (transition-all duration-300).
- Mobile-first responsive layout: grid grid-cols-1 md:grid-cols-2 lg:grid-cols-3, hamburger navigation on small screens.
- Semantic HTML5 (header, nav, main, section, footer), proper meta tags and viewport.
- Professional typography: Google Fonts Inter, clear heading hierarchy.

JAVASCRIPT REQUIREMENTS (if needed):
- All JavaScript inline in <script> tags at the bottom of the body.
- Modern ES6+ with const/let; smooth scrolling, form validation, mobile menu toggles.
""".strip()


def _page_lines(template: WebsiteTemplate) -> List[str]:
    lines = []
    for page in template.pages:
        flag = "required" if page.required else "optional"
        lines.append(f"- {page.filename} ({page.title}, {flag}): {', '.join(page.sections)}")
    return lines


def single_page_prompt(prompt: str, template: WebsiteTemplate) -> str:
    return f"""You are an expert full-stack web developer specializing in stunning, modern web applications.
Generate a complete, production-ready SINGLE PAGE web application using inline Tailwind CSS and JavaScript.

CRITICAL INSTRUCTIONS FOR FILE GENERATION:
1. Generate ONLY HTML files with ALL styling and JavaScript INLINE.
2. Use EXACT file marking format: "FILE: filename.ext" followed by triple backticks with the language.

{_DESIGN_RULES}

SECTIONS TO INCLUDE: {', '.join(template.pages[0].sections) if template.pages else 'hero, features, cta, footer'}

SHARED STYLE SEED (adapt the palette, keep the variable names):
{template.shared_styles}

{_FILE_FORMAT_HINT}

Generate a complete, stunning single-page web application for: {prompt}"""


def multi_page_prompt(prompt: str, template: WebsiteTemplate) -> str:
    pages = "\n".join(_page_lines(template))
    return f"""You are an expert full-stack web developer specializing in stunning, modern web applications.
Generate a complete, production-ready MULTI-PAGE web application using inline Tailwind CSS and JavaScript.

CRITICAL INSTRUCTIONS FOR FILE GENERATION:
1. Generate ONLY HTML files with ALL styling and JavaScript INLINE.
2. Use EXACT file marking format: "FILE: filename.ext" followed by triple backticks with the language.

{_DESIGN_RULES}

MULTI-PAGE REQUIREMENTS:
1. The same navigation header and footer on every page, linking all pages to each other.
2. Each page is a complete HTML document with the Tailwind CDN included.
3. Consistent branding, titles and meta tags across pages.
4. index.html comes first.

PAGES ({template.name}):
{pages}

SHARED STYLE SEED (adapt the palette, keep the variable names):
{template.shared_styles}

{_FILE_FORMAT_HINT}

Generate a complete, stunning {template.name.lower()} for: {prompt}"""


def build_instruction(req: GenerationRequest) -> str:
    if req.is_single_page:
        return single_page_prompt(req.prompt, req.template)
    return multi_page_prompt(req.prompt, req.template)


def tail_lines(text: str, count: int = CONTINUATION_TAIL_LINES) -> str:
    lines = (text or "").rstrip().splitlines()
    return "\n".join(lines[-count:])


def continuation_prompt(original: str, req: GenerationRequest) -> str:
    return f"""Your previous response was cut off before it was finished.
It was generating a {'single-page' if req.is_single_page else 'multi-page'} website for: {req.prompt}

The response ended with these lines:
<<<TAIL
{tail_lines(original)}
TAIL>>>

Continue EXACTLY from the last character above. Rules:
- Do not repeat any of the lines shown, do not restart the file, and do not add explanations or prose.
- Do not open a new code fence for the file that was cut off; just keep writing its content and close its fence when done.
- If more files are needed afterwards, use the same format: a "FILE: <path>" line followed by a fenced block."""


def _files_context(files: Iterable[FileRecord]) -> str:
    return "\n\n---\n\n".join(f"{f.path}:\n{f.content}" for f in files)


def edit_prompt(instruction: str, files: Iterable[FileRecord]) -> str:
    return f"""You are editing an existing web application. Here are the current files:

{_files_context(files)}

USER REQUEST: {instruction}

IMPORTANT: Only return the MODIFIED files that need changes. Do not regenerate unchanged files.
Start with one or two sentences describing the change, then emit each changed file in full using the same format:

FILE: <path>
```<language>
<complete file content>
```"""
