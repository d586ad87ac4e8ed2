"""relc.context

Declaration context stack.

Tracks which kinds of declaration are syntactically open so the builder can
tell what an event means (an address literal is a function entry point inside
a function declaration, but a field offset inside a variable declaration).
"""

from __future__ import annotations

from enum import Enum, auto
from typing import List, Optional


class ContextTag(Enum):
    CLASS_DECL = auto()
    FUNCTION_DECL = auto()
    VARIABLE_DECL = auto()


class InternalCompilerError(Exception):
    """Builder inconsistency that well-formed input can never trigger."""

    def __init__(self, message: str, line: Optional[int] = None):
        self.message = message
        self.line = line
        if line is not None:
            super().__init__(f"{message} (line {line})")
        else:
            super().__init__(message)


class DeclarationContextStack:
    """Stack of open declaration kinds, innermost last."""

    def __init__(self) -> None:
        self._tags: List[ContextTag] = []

    def push(self, tag: ContextTag) -> None:
        self._tags.append(tag)

    def pop(self, tag: ContextTag) -> None:
        if not self._tags:
            raise InternalCompilerError(f"context stack underflow popping {tag.name}")
        if self._tags[-1] is not tag:
            raise InternalCompilerError(
                f"context stack mismatch: expected {tag.name}, found {self._tags[-1].name}"
            )
        self._tags.pop()

    def top(self) -> Optional[ContextTag]:
        if not self._tags:
            return None
        return self._tags[-1]

    def contains(self, tag: ContextTag) -> bool:
        return tag in self._tags

    def expect_empty(self) -> None:
        if self._tags:
            open_tags = ", ".join(t.name for t in self._tags)
            raise InternalCompilerError(f"unclosed declaration contexts at end of input: {open_tags}")

    def __len__(self) -> int:
        return len(self._tags)

    def __bool__(self) -> bool:
        return bool(self._tags)
