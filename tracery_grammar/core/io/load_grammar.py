from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from tracery_grammar.core.errors import GrammarLoadError


def load_grammar(path: str) -> dict[str, Any]:
    """Load a YAML/JSON grammar file.

    Returns the raw symbol -> candidates mapping plus a ``__file__`` key.
    Does not coerce types; validator owns shape checking.
    """

    p = Path(path)
    if not p.exists():
        raise GrammarLoadError(
            code="E_FILE_NOT_FOUND",
            message="file does not exist",
            file=str(p),
        )

    suffix = p.suffix.lower()
    try:
        raw_text = p.read_text(encoding="utf-8")
    except Exception as e:  # pragma: no cover
        raise GrammarLoadError(code="E_FILE_READ", message=str(e), file=str(p)) from e

    try:
        if suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(raw_text)
        elif suffix == ".json":
            data = json.loads(raw_text)
        else:
            raise GrammarLoadError(
                code="E_UNSUPPORTED_FORMAT",
                message="supported formats are .yaml/.yml and .json",
                file=str(p),
            )
    except GrammarLoadError:
        raise
    except Exception as e:
        code = "E_YAML_PARSE" if suffix in {".yaml", ".yml"} else "E_JSON_PARSE"
        raise GrammarLoadError(code=code, message=str(e), file=str(p)) from e

    if not isinstance(data, dict):
        raise GrammarLoadError(
            code="E_INVALID_TOP_LEVEL",
            message="top-level document must be a mapping of symbol -> candidates",
            file=str(p),
        )

    out: dict[str, Any] = dict(data)
    out["__file__"] = str(p)
    return out
