import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse

from sitegen import catalog, llm_client, projects
from sitegen.auth import extract_client_key, keys_required, require_api_key
from sitegen.llm_client import GenerationFailed
from sitegen.models import EditRequest, FileRecord, FileUpdate, GenerateRequest, InlineImage, Project
from sitegen.preview import assemble_preview

if not logging.getLogger().handlers:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    info = llm_client.status()
    log.info(
        "startup: provider=%s model=%s has_token=%s images=%s store=%s api_keys=%s",
        info.get("provider"),
        info.get("model"),
        info.get("has_token"),
        info.get("images", {}).get("enabled"),
        type(projects.store).__name__,
        keys_required(),
    )
    yield


app = FastAPI(lifespan=lifespan)

allow_origins = [o.strip() for o in os.getenv("ALLOW_ORIGINS", "*").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = str(uuid.uuid4())
    start = time.time()
    request.state.request_id = rid
    response = None
    try:
        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
    finally:
        dur_ms = int((time.time() - start) * 1000)
        log.info(
            "rid=%s method=%s path=%s status=%s dur_ms=%d",
            rid,
            request.method,
            request.url.path,
            getattr(response, "status_code", "?"),
            dur_ms,
        )


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    content: Dict[str, Any] = {"error": message}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


def _files_payload(files: List[FileRecord]) -> List[Dict[str, Any]]:
    return [f.model_dump() for f in files]


def _project_payload(p: Project) -> Dict[str, Any]:
    return {
        "project_id": p.id,
        "name": p.name,
        "summary": p.summary,
        "created_at": p.created_at,
        "updated_at": p.updated_at,
        "files": _files_payload(p.ordered_files()),
    }


def _inline_image(req: GenerateRequest) -> Optional[InlineImage]:
    data = (req.image_base64 or "").strip()
    if not data:
        return None
    mime = req.image_mime_type or "image/jpeg"
    # Accept data URLs as pasted from a browser
    if data.startswith("data:") and "," in data:
        header, data = data.split(",", 1)
        mime = header[5:].split(";", 1)[0] or mime
    return InlineImage(mime_type=mime, data=data)


def _llm_unavailable() -> Optional[JSONResponse]:
    if not llm_client.status().get("has_token"):
        return _error(503, "Missing LLM credentials")
    return None


async def _run_edit(project_id: str, instruction: str, client_key: str):
    try:
        project = projects.store.get(project_id)
    except projects.ProjectNotFound:
        return _error(404, "project not found", project_id=project_id)
    try:
        projects.store.begin(project_id)
    except projects.ProjectBusy:
        return _error(409, "a request for this project is already running", project_id=project_id)
    try:
        log.info("edit: project=%s client=%s files=%d", project_id, client_key, len(project.files))
        result = await llm_client.edit_app(instruction, project.ordered_files())
        if not result.files:
            return _error(422, "the edit produced no file changes", description=result.description)
        updated = projects.store.patch_files(project_id, result.files)
    except GenerationFailed as e:
        log.warning("edit: upstream failure project=%s: %s", project_id, e)
        return _error(502, str(e), upstream_status=e.status_code)
    finally:
        projects.store.end(project_id)
    payload = _project_payload(updated)
    payload["description"] = result.description
    payload["changed"] = [f.path for f in result.files]
    return payload


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/llm/status")
def llm_status_endpoint() -> Dict[str, Any]:
    return llm_client.status()


@app.get("/llm/probe")
def llm_probe_endpoint() -> Dict[str, Any]:
    return llm_client.probe()


@app.get("/templates")
def templates_endpoint() -> List[Dict[str, Any]]:
    return [
        {
            "id": t.id,
            "name": t.name,
            "description": t.description,
            "category": t.category,
            "features": list(t.features),
            "pages": [p.filename for p in t.pages],
        }
        for t in catalog.all_templates()
    ]


@app.post("/generate")
async def generate_endpoint(
    req: GenerateRequest,
    request: Request,
    api_key: str = Depends(require_api_key),
):
    client_key = extract_client_key(api_key, request.client.host if request.client else "anon")
    unavailable = _llm_unavailable()
    if unavailable is not None:
        return unavailable

    image = _inline_image(req)
    if not req.prompt.strip() and image is None:
        return _error(422, "prompt or image_base64 is required")

    # A follow-up message that reads like an edit goes to the edit flow
    if req.project_id and projects.is_edit_request(req.prompt):
        try:
            has_files = bool(projects.store.get(req.project_id).files)
        except projects.ProjectNotFound:
            return _error(404, "project not found", project_id=req.project_id)
        if has_files:
            return await _run_edit(req.project_id, req.prompt, client_key)

    if req.project_id:
        try:
            projects.store.get(req.project_id)
            projects.store.begin(req.project_id)
        except projects.ProjectNotFound:
            return _error(404, "project not found", project_id=req.project_id)
        except projects.ProjectBusy:
            return _error(409, "a request for this project is already running", project_id=req.project_id)

    log.info("generate: client=%s prompt_chars=%d image=%s", client_key, len(req.prompt), image is not None)
    try:
        result = await llm_client.generate_app(req.prompt, image, decorate_images=req.decorate)
        if req.project_id:
            project = projects.store.replace_files(req.project_id, result.files)
        else:
            project = projects.store.create(req.prompt, result.files)
    except GenerationFailed as e:
        log.warning("generate: upstream failure: %s", e)
        return _error(502, str(e), upstream_status=e.status_code)
    finally:
        if req.project_id:
            projects.store.end(req.project_id)

    return {
        "project_id": project.id,
        "name": project.name,
        "description": result.description,
        "files": _files_payload(result.files),
    }


@app.post("/projects/{project_id}/edit")
async def edit_endpoint(
    project_id: str,
    req: EditRequest,
    request: Request,
    api_key: str = Depends(require_api_key),
):
    client_key = extract_client_key(api_key, request.client.host if request.client else "anon")
    unavailable = _llm_unavailable()
    if unavailable is not None:
        return unavailable
    return await _run_edit(project_id, req.instruction, client_key)


@app.get("/projects/{project_id}")
def get_project(project_id: str, api_key: str = Depends(require_api_key)):
    try:
        return _project_payload(projects.store.get(project_id))
    except projects.ProjectNotFound:
        return _error(404, "project not found", project_id=project_id)


@app.put("/projects/{project_id}/files/{path:path}")
def put_file(project_id: str, path: str, body: FileUpdate, api_key: str = Depends(require_api_key)):
    if not path.strip():
        return _error(422, "path is required")
    try:
        project = projects.store.update_file(project_id, path, body.content, body.language)
    except projects.ProjectNotFound:
        return _error(404, "project not found", project_id=project_id)
    return _project_payload(project)


@app.get("/projects/{project_id}/preview", response_class=HTMLResponse)
def preview_project(project_id: str, path: Optional[str] = None, api_key: str = Depends(require_api_key)):
    try:
        project = projects.store.get(project_id)
    except projects.ProjectNotFound:
        return _error(404, "project not found", project_id=project_id)
    html = assemble_preview(project.ordered_files(), path)
    if html is None:
        return _error(404, "no HTML page to preview", path=path)
    return HTMLResponse(html)
