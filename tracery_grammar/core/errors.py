from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class GrammarError(Exception):
    """Base error envelope. Prefer returning/printing these rather than raising raw exceptions."""

    code: str
    message: str
    file: Optional[str] = None
    path: Optional[str] = None

    def __str__(self) -> str:
        parts: list[str] = []
        if self.file:
            parts.append(self.file)
        if self.path:
            parts.append(self.path)
        loc = ":".join(parts) if parts else "<grammar>"
        return f"{loc}: {self.code}: {self.message}"


class GrammarLoadError(GrammarError):
    pass


class GrammarValidationError(GrammarError):
    pass


class GrammarConfigError(GrammarError):
    pass


class ExpansionDepthError(GrammarError):
    pass
