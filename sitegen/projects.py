from __future__ import annotations

import json
import logging
import os
import re
import threading
import time
import uuid
from typing import Dict, Iterable, Optional, Set

from sitegen.llm_parsing import language_for_path
from sitegen.models import FileRecord, Project

log = logging.getLogger(__name__)

try:
    import redis
except Exception:
    redis = None

_REDIS_URL = os.getenv("REDIS_URL", "").strip()
_REDIS_PREFIX = os.getenv("REDIS_PROJECT_PREFIX", "sitegen:project:")
try:
    _REDIS_TIMEOUT = float(os.getenv("REDIS_TIMEOUT_SECS", "0.5"))
except Exception:
    _REDIS_TIMEOUT = 0.5
try:
    PROJECT_TTL_SECS = int(os.getenv("PROJECT_TTL_SECS", str(7 * 24 * 3600)))
except Exception:
    PROJECT_TTL_SECS = 7 * 24 * 3600
try:
    INFLIGHT_TTL_SECS = int(os.getenv("INFLIGHT_TTL_SECS", "300"))
except Exception:
    INFLIGHT_TTL_SECS = 300

DEFAULT_NAME = "Untitled Site"
SUMMARY_CHARS = 100

EDIT_KEYWORDS = ("edit", "change", "modify", "update", "fix", "adjust", "add to", "remove from")

_NAME_RE = re.compile(r"(?:create|build|make)\s+(?:an?\s+)?([^.]+)", re.IGNORECASE)


class ProjectNotFound(KeyError):
    pass


class ProjectBusy(RuntimeError):
    """Another generation or edit is already running for this project."""


def derive_name(prompt: str) -> str:
    m = _NAME_RE.search(prompt or "")
    if not m:
        return DEFAULT_NAME
    name = m.group(1).strip()
    if not name:
        return DEFAULT_NAME
    return name[0].upper() + name[1:]


def summarize(prompt: str) -> str:
    text = (prompt or "").strip()
    if len(text) <= SUMMARY_CHARS:
        return text
    return text[:SUMMARY_CHARS] + "..."


def is_edit_request(message: str) -> bool:
    m = (message or "").lower()
    return any(k in m for k in EDIT_KEYWORDS)


def _index(files: Iterable[FileRecord]) -> Dict[str, FileRecord]:
    # Later records for the same path win
    out: Dict[str, FileRecord] = {}
    for f in files:
        out[f.path] = f
    return out


class MemoryProjectStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._projects: Dict[str, Project] = {}
        self._inflight: Set[str] = set()

    def _load(self, project_id: str) -> Optional[Project]:
        p = self._projects.get(project_id)
        return p.model_copy(deep=True) if p else None

    def _save(self, project: Project) -> None:
        self._projects[project.id] = project.model_copy(deep=True)

    def get(self, project_id: str) -> Project:
        with self._lock:
            p = self._load(project_id)
        if p is None:
            raise ProjectNotFound(project_id)
        return p

    def create(self, prompt: str, files: Iterable[FileRecord]) -> Project:
        p = Project(
            id=uuid.uuid4().hex,
            name=derive_name(prompt),
            summary=summarize(prompt),
            files=_index(files),
        )
        with self._lock:
            self._save(p)
        log.info("projects: created id=%s name=%r files=%d", p.id, p.name, len(p.files))
        return p

    def replace_files(self, project_id: str, files: Iterable[FileRecord]) -> Project:
        with self._lock:
            p = self._load(project_id)
            if p is None:
                raise ProjectNotFound(project_id)
            p.files = _index(files)
            p.updated_at = time.time()
            self._save(p)
        return p

    def patch_files(self, project_id: str, files: Iterable[FileRecord]) -> Project:
        """Overwrite the returned paths; everything else stays as it was."""
        with self._lock:
            p = self._load(project_id)
            if p is None:
                raise ProjectNotFound(project_id)
            p.files.update(_index(files))
            p.updated_at = time.time()
            self._save(p)
        return p

    def update_file(self, project_id: str, path: str, content: str, language: Optional[str] = None) -> Project:
        with self._lock:
            p = self._load(project_id)
            if p is None:
                raise ProjectNotFound(project_id)
            prev = p.files.get(path)
            lang = language or (prev.language if prev else language_for_path(path))
            p.files[path] = FileRecord(path=path, content=content, language=lang)
            p.updated_at = time.time()
            self._save(p)
        return p

    def begin(self, project_id: str) -> None:
        with self._lock:
            if project_id in self._inflight:
                raise ProjectBusy(project_id)
            self._inflight.add(project_id)

    def end(self, project_id: str) -> None:
        with self._lock:
            self._inflight.discard(project_id)


class RedisProjectStore(MemoryProjectStore):
    """Projects as JSON strings under REDIS_PROJECT_PREFIX; the in-flight guard uses SET NX."""

    def __init__(self, client) -> None:
        super().__init__()
        self._r = client

    def _key(self, project_id: str) -> str:
        return f"{_REDIS_PREFIX}{project_id}"

    def _load(self, project_id: str) -> Optional[Project]:
        raw = self._r.get(self._key(project_id))
        if not raw:
            return None
        return Project.model_validate(json.loads(raw))

    def _save(self, project: Project) -> None:
        self._r.set(self._key(project.id), project.model_dump_json(), ex=PROJECT_TTL_SECS)

    def begin(self, project_id: str) -> None:
        ok = self._r.set(self._key(project_id) + ":inflight", "1", nx=True, ex=INFLIGHT_TTL_SECS)
        if not ok:
            raise ProjectBusy(project_id)

    def end(self, project_id: str) -> None:
        try:
            self._r.delete(self._key(project_id) + ":inflight")
        except Exception as exc:
            log.warning("projects: failed to clear in-flight flag for %s: %s", project_id, exc)


def _build_store() -> MemoryProjectStore:
    if redis and _REDIS_URL:
        try:
            client = redis.from_url(
                _REDIS_URL,
                decode_responses=True,
                socket_timeout=_REDIS_TIMEOUT,
                socket_connect_timeout=_REDIS_TIMEOUT,
            )
            client.ping()
            log.info("projects: using Redis store")
            return RedisProjectStore(client)
        except Exception as exc:
            log.warning("projects: Redis unavailable, falling back to memory: %s", exc)
    return MemoryProjectStore()


store: MemoryProjectStore = _build_store()
