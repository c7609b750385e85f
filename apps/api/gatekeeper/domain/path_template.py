"""Grant path templates.

A template is a literal path whose segments may be named parameters, e.g.
``/auth/:id/profiles``. A parameter matches exactly one non-empty segment of
the request path. Matching is case-sensitive and anchored at both ends; a
single trailing slash on the request path is tolerated.

Both sides are split on ``/`` before percent-escapes are decoded, so an
encoded slash (``%2F``) stays inside its segment.
"""

from __future__ import annotations

from dataclasses import dataclass
import re
from urllib.parse import unquote

_PARAM_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_INVALID_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class PathTemplateError(ValueError):
    """Raised when a grant path cannot be compiled into a matcher."""


class PathDecodeError(ValueError):
    """Raised when a request path segment holds a malformed percent-escape."""


@dataclass(frozen=True, slots=True)
class _Segment:
    value: str
    is_param: bool


@dataclass(frozen=True, slots=True)
class PathTemplate:
    template: str
    segments: tuple[_Segment, ...]

    @property
    def param_names(self) -> tuple[str, ...]:
        return tuple(segment.value for segment in self.segments if segment.is_param)

    def match(self, path: str) -> dict[str, str] | None:
        """Return bound parameters when ``path`` matches, otherwise ``None``."""
        raw_segments = _split(path)
        if raw_segments is None or len(raw_segments) != len(self.segments):
            return None

        params: dict[str, str] = {}
        for segment, raw in zip(self.segments, raw_segments):
            try:
                decoded = decode_segment(raw)
            except PathDecodeError:
                return None
            if segment.is_param:
                if not decoded:
                    return None
                params[segment.value] = decoded
            elif decoded != segment.value:
                return None
        return params

    def matches(self, path: str) -> bool:
        return self.match(path) is not None


def decode_segment(segment: str) -> str:
    if _INVALID_ESCAPE.search(segment):
        raise PathDecodeError(f"Malformed percent-escape in segment {segment!r}")
    try:
        return unquote(segment, errors="strict")
    except UnicodeDecodeError as exc:
        raise PathDecodeError(f"Percent-escape is not valid UTF-8 in segment {segment!r}") from exc


def _split(path: str) -> list[str] | None:
    if not path.startswith("/"):
        return None
    body = path[1:]
    if body.endswith("/"):
        body = body[:-1]
    if not body:
        return []
    return body.split("/")


def compile_path_template(template: str) -> PathTemplate:
    """Compile a grant path such as ``/reports/:id`` into a matcher."""
    if not isinstance(template, str) or not template.startswith("/"):
        raise PathTemplateError(f"Grant path must start with '/': {template!r}")

    raw_segments = _split(template)
    if raw_segments is None:
        raise PathTemplateError(f"Grant path must start with '/': {template!r}")

    segments: list[_Segment] = []
    seen_params: set[str] = set()
    for raw in raw_segments:
        if raw.startswith(":"):
            name = raw[1:]
            if not _PARAM_NAME.match(name):
                raise PathTemplateError(f"Invalid parameter name {raw!r} in {template!r}")
            if name in seen_params:
                raise PathTemplateError(f"Duplicate parameter {raw!r} in {template!r}")
            seen_params.add(name)
            segments.append(_Segment(value=name, is_param=True))
            continue
        if not raw:
            raise PathTemplateError(f"Empty segment in {template!r}")
        try:
            literal = decode_segment(raw)
        except PathDecodeError as exc:
            raise PathTemplateError(str(exc)) from exc
        segments.append(_Segment(value=literal, is_param=False))

    return PathTemplate(template=template, segments=tuple(segments))


def match_path(template: str, path: str) -> dict[str, str] | None:
    return compile_path_template(template).match(path)


__all__ = [
    "PathDecodeError",
    "PathTemplate",
    "PathTemplateError",
    "compile_path_template",
    "decode_segment",
    "match_path",
]
