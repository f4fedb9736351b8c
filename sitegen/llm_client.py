from __future__ import annotations

import logging
import os
import re
from typing import Any, Dict, List, Optional, Sequence

import httpx

from sitegen import catalog, images, llm_parsing, llm_prompts, render
from sitegen.models import (
    DescriptionContext,
    FileRecord,
    GenerationRequest,
    GenerationResult,
    InlineImage,
)
from sitegen.truncation import has_unbalanced_fences, is_truncated

log = logging.getLogger(__name__)

GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "").strip()
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-pro").strip()
GEMINI_API_BASE = os.getenv("GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta").strip().rstrip("/")

try:
    TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.7"))
except Exception:
    TEMPERATURE = 0.7
# Lower variance gives cleaner resumptions of a cut-off file
try:
    CONTINUATION_TEMPERATURE = float(os.getenv("LLM_CONTINUATION_TEMPERATURE", "0.3"))
except Exception:
    CONTINUATION_TEMPERATURE = 0.3
try:
    TOP_K = int(os.getenv("LLM_TOP_K", "40"))
except Exception:
    TOP_K = 40
try:
    TOP_P = float(os.getenv("LLM_TOP_P", "0.95"))
except Exception:
    TOP_P = 0.95
try:
    LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "8192"))
except Exception:
    LLM_MAX_TOKENS = 8192
try:
    LLM_TIMEOUT_SECS = float(os.getenv("LLM_TIMEOUT_SECS", "120"))
except Exception:
    LLM_TIMEOUT_SECS = 120.0

_OPENING_FENCE_LINE_RE = re.compile(r"\A\s*```[\w+#.-]+[ \t]*\r?\n")


class GenerationFailed(RuntimeError):
    """The text-generation service could not produce a completion."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def status() -> Dict[str, Any]:
    return {
        "provider": "gemini",
        "model": GEMINI_MODEL,
        "has_token": bool(GEMINI_API_KEY),
        "using": "gemini" if GEMINI_API_KEY else "none",
        "images": images.status(),
    }


def probe() -> Dict[str, Any]:
    if not GEMINI_API_KEY:
        return {"ok": False, "using": "none", "error": "GEMINI_API_KEY is not configured"}
    return {"ok": True, "using": "gemini", "model": GEMINI_MODEL}


def _make_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=LLM_TIMEOUT_SECS)


def generation_endpoint(model: Optional[str] = None) -> str:
    return f"{GEMINI_API_BASE}/models/{model or GEMINI_MODEL}:generateContent"


def sampling_config(temperature: Optional[float] = None) -> Dict[str, Any]:
    return {
        "temperature": TEMPERATURE if temperature is None else temperature,
        "topK": TOP_K,
        "topP": TOP_P,
        "maxOutputTokens": LLM_MAX_TOKENS,
    }


def _extract_gemini_text(payload: Dict[str, Any]) -> Optional[str]:
    """Join the text parts of the first candidate.

    None means the envelope is malformed; "" means the model answered with nothing.
    """
    if not isinstance(payload, dict):
        return None
    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return None
    first = candidates[0]
    if not isinstance(first, dict):
        return None
    content = first.get("content")
    if not isinstance(content, dict):
        # Candidates blocked by safety filters or cut at zero tokens carry no content
        return "" if first.get("finishReason") else None
    parts = content.get("parts") or []
    texts: List[str] = []
    for part in parts:
        if isinstance(part, dict) and isinstance(part.get("text"), str):
            texts.append(part["text"])
    return "".join(texts)


async def call_model(
    instruction: str,
    image: Optional[InlineImage] = None,
    *,
    temperature: Optional[float] = None,
) -> str:
    """One generateContent round-trip. Raises GenerationFailed on any transport or envelope problem."""
    if not GEMINI_API_KEY:
        raise GenerationFailed("GEMINI_API_KEY is not configured")
    parts: List[Dict[str, Any]] = [{"text": instruction}]
    if image is not None:
        parts.append({"inlineData": {"mimeType": image.mime_type, "data": image.data}})
    body = {
        "contents": [{"parts": parts}],
        "generationConfig": sampling_config(temperature),
    }
    headers = {"x-goog-api-key": GEMINI_API_KEY, "Content-Type": "application/json"}
    try:
        async with _make_client() as client:
            resp = await client.post(generation_endpoint(), headers=headers, json=body)
    except httpx.HTTPError as exc:
        log.warning("Gemini request error: %r", exc)
        raise GenerationFailed(f"Gemini request error: {exc!r}") from exc

    if resp.status_code != 200:
        msg = (resp.text or "")[:400]
        log.warning("Gemini HTTP %s: %s", resp.status_code, msg)
        raise GenerationFailed(f"Gemini HTTP {resp.status_code}: {msg}", status_code=resp.status_code)

    try:
        data = resp.json()
    except ValueError as exc:
        log.warning("Gemini: non-JSON body")
        raise GenerationFailed("Gemini returned a non-JSON body", status_code=resp.status_code) from exc

    text = _extract_gemini_text(data)
    if text is None:
        log.warning("Gemini: malformed response envelope keys=%s", sorted(data) if isinstance(data, dict) else type(data))
        raise GenerationFailed("Gemini response had no candidates", status_code=resp.status_code)
    log.debug("Gemini: completion chars=%d", len(text))
    return text


def merge_continuation(original: str, continuation: str) -> str:
    more = continuation
    # Resuming inside an open fence: a re-opened fence would end up inside the file body.
    # A bare fence line closes the open block and stays.
    if has_unbalanced_fences(original):
        more = _OPENING_FENCE_LINE_RE.sub("", more, count=1)
    return original + "\n" + more


async def continue_if_needed(original: str, req: GenerationRequest) -> str:
    """Ask the model once to resume a cut-off completion; never raises."""
    if not is_truncated(original):
        return original
    log.info("llm: completion looks truncated (chars=%d); requesting continuation", len(original))
    try:
        more = await call_model(
            llm_prompts.continuation_prompt(original, req),
            temperature=CONTINUATION_TEMPERATURE,
        )
    except Exception as exc:
        log.warning("llm: continuation failed; keeping truncated completion: %r", exc)
        return original
    if not more.strip():
        log.warning("llm: continuation came back empty; keeping truncated completion")
        return original
    if is_truncated(more):
        log.warning("llm: continuation is itself truncated; the last file may be incomplete")
    return merge_continuation(original, more)


def build_request(prompt: str, image: Optional[InlineImage] = None) -> GenerationRequest:
    text = (prompt or "").strip()
    if not text and image is None:
        raise ValueError("prompt must be non-empty unless an image is supplied")
    return GenerationRequest(
        prompt=text,
        image=image,
        page_mode=catalog.page_mode_for(text),
        template=catalog.detect_template(text),
    )


def description_context(req: GenerationRequest, file_count: int) -> DescriptionContext:
    tpl = req.template
    return DescriptionContext(
        template_name=tpl.name,
        category=tpl.category,
        features=list(tpl.features),
        pages=list(tpl.pages),
        file_count=file_count,
        single_page=req.is_single_page,
    )


async def generate_app(
    prompt: str,
    image: Optional[InlineImage] = None,
    *,
    decorate_images: bool = False,
) -> GenerationResult:
    """Prompt in, {description, files} out.

    Only a failed call to the text service raises (GenerationFailed); every
    parsing anomaly degrades to a usable result, including a placeholder page
    when no files can be recovered.
    """
    req = build_request(prompt, image)
    log.info(
        "llm: generating template=%s mode=%s image=%s",
        req.template.id,
        req.page_mode,
        image is not None,
    )
    raw = await call_model(llm_prompts.build_instruction(req), req.image)
    merged = await continue_if_needed(raw, req)
    files, remainder = llm_parsing.split_completion(merged)
    if not files:
        log.warning("llm: no files recovered from completion (chars=%d); serving placeholder page", len(merged))
        files = [render.render_placeholder_page(req.prompt)]
    description = llm_parsing.sanitize_description(remainder, description_context(req, len(files)))
    if decorate_images:
        files = await images.decorate(files, req.prompt)
    log.info("llm: generated files=%s", [f.path for f in files])
    return GenerationResult(description=description, files=files)


async def edit_app(instruction: str, current_files: Sequence[FileRecord]) -> GenerationResult:
    """Ask for changed files only; the caller merges them over its snapshot by path."""
    req = build_request(instruction)
    raw = await call_model(llm_prompts.edit_prompt(req.prompt, current_files))
    merged = await continue_if_needed(raw, req)
    files, remainder = llm_parsing.split_completion(merged)
    cleaned = llm_parsing.clean_description(remainder)
    if llm_parsing.is_acceptable_description(cleaned):
        description = cleaned
    else:
        description = render.render_edit_summary(files)
    log.info("llm: edit returned files=%s", [f.path for f in files])
    return GenerationResult(description=description, files=files)
