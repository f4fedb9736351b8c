import os
import re
from pathlib import Path
from typing import Dict, List, MutableMapping, Optional, Tuple

_ENV_ASSIGNMENT_RE = re.compile(r"^(?:export[ \t]+)?([A-Za-z_][A-Za-z0-9_]*)[ \t]*=[ \t]*(.*)$")
_INLINE_COMMENT_RE = re.compile(r"[ \t]+#.*$")


def parse_env_line(line: str) -> Optional[Tuple[str, str]]:
	"""Parse one `KEY=value` line; blank lines, comments and malformed lines give None."""
	s = line.strip()
	if not s or s.startswith("#"):
		return None
	m = _ENV_ASSIGNMENT_RE.match(s)
	if not m:
		return None
	key, raw = m.group(1), m.group(2).strip()
	if raw[:1] in ("'", '"'):
		end = raw.find(raw[0], 1)
		if end > 0:
			return key, raw[1:end]
	return key, _INLINE_COMMENT_RE.sub("", raw)


def read_env_file(path: Path) -> Dict[str, str]:
	values: Dict[str, str] = {}
	for line in path.read_text(encoding="utf-8").splitlines():
		parsed = parse_env_line(line)
		if parsed is not None:
			key, val = parsed
			values[key] = val
	return values


def apply_env(values: Dict[str, str], environ: Optional[MutableMapping[str, str]] = None) -> List[str]:
	"""Set keys missing from the environment; returns the keys that were set."""
	target = os.environ if environ is None else environ
	applied = []
	for key, val in values.items():
		# Real environment wins over the file
		if key not in target:
			target[key] = val
			applied.append(key)
	return applied


def _load_dotenv_if_needed() -> None:
	# Keep tests offline: never pick up real credentials under pytest
	if os.getenv("PYTEST_CURRENT_TEST"):
		return
	env_path = Path(os.getenv("SITEGEN_ENV_FILE", ".env"))
	if not env_path.is_file():
		return
	try:
		apply_env(read_env_file(env_path))
	except (OSError, UnicodeDecodeError):
		# Fail open: environment loading is best-effort
		return


_load_dotenv_if_needed()
