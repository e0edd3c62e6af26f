"""Resolve request paths to application handlers."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Protocol

from ..core.error import ResolverKindError
from ..core.log import get_logger


@dataclass(frozen=True)
class Resolution:
    """
    Result of resolving a request path.

    Attributes:
        route: The matched part of the path, e.g. "/images".
        path: The handler: a script path, an import string, a class or an object.
        ext: Suffix of the last path segment without the dot, or None. When
            that segment is part of the remainder it keeps its suffix there.
        remainder: Path segments after the route.
    """
    route: str
    path: Any
    ext: str | None = None
    remainder: list[str] = field(default_factory=list)


class Resolver(Protocol):
    def resolve(self, path: str) -> Resolution | None: ...


def split_path(path: str) -> list[str]:
    return [s for s in path.strip("/").split("/") if s]


def _split_ext(segment: str) -> tuple[str, str | None]:
    if "." not in segment.strip("."):
        return segment, None
    base, ext = segment.rsplit(".", 1)
    return base, ext or None


def _route(segments: list[str]) -> str:
    return "/" + "/".join(segments)


def _remainder_ext(remainder: list[str]) -> str | None:
    return _split_ext(remainder[-1])[1] if remainder else None


class FileResolver:
    """
    Map request paths onto Python scripts below an app directory.

    /images/edit/3 resolves to the deepest existing file of:
        app/images/edit/3.py, app/images/edit.py, app/images.py, app/index.py
    A directory is matched through its index.py. Segments that start with
    "." or "_" never match.
    """

    def __init__(self, app_dir: str | Path) -> None:
        self.app_dir: Path = Path(app_dir).resolve()
        self.logger = get_logger(self)

    def _candidate(self, segments: list[str]) -> Path | None:
        if any(s.startswith((".", "_")) for s in segments):
            return None
        target = self.app_dir.joinpath(*segments) if segments else self.app_dir
        script = target.with_suffix(".py") if segments else None
        if script is not None and script.is_file():
            return script
        index = target / "index.py"
        if index.is_file():
            return index
        return None

    def resolve(self, path: str) -> Resolution | None:
        segments = split_path(path)
        for i in range(len(segments), -1, -1):
            prefix = segments[:i]
            ext = None
            if i == len(segments) and i > 0:
                base, ext = _split_ext(prefix[-1])
                if ext is not None:
                    script = self._candidate(prefix[:-1] + [base])
                    if script is not None:
                        return Resolution(_route(prefix[:-1] + [base]), str(script), ext, [])

            script = self._candidate(prefix)
            if script is not None:
                self.logger.debug("Resolved %s to %s", path, script)
                return Resolution(_route(prefix), str(script), _remainder_ext(segments[i:]), segments[i:])
        return None


class RouteResolver:
    """
    Map request paths onto handlers registered in memory.

    The longest matching route (by segments) wins.
    """

    def __init__(self, routes: Mapping[str, Any] | None = None) -> None:
        self.routes: dict[tuple[str, ...], Any] = {}
        for route, handler in (routes or {}).items():
            self.add(route, handler)

    def add(self, route: str, handler: Any) -> None:
        self.routes[tuple(split_path(route))] = handler

    def resolve(self, path: str) -> Resolution | None:
        segments = split_path(path)
        for i in range(len(segments), -1, -1):
            prefix = segments[:i]
            if i == len(segments) and i > 0:
                base, ext = _split_ext(prefix[-1])
                key = tuple(prefix[:-1] + [base])
                if ext is not None and key in self.routes:
                    return Resolution(_route(list(key)), self.routes[key], ext, [])

            key = tuple(prefix)
            if key in self.routes:
                return Resolution(_route(prefix), self.routes[key], _remainder_ext(segments[i:]), segments[i:])
        return None


class ResolveManager:
    """
    Resolvers by kind, e.g. "app".
    """

    def __init__(self, **resolvers: Resolver) -> None:
        self.resolvers: dict[str, Resolver] = dict(resolvers)

    def register(self, kind: str, resolver: Resolver) -> None:
        self.resolvers[kind] = resolver

    def get_resolver(self, kind: str) -> Resolver:
        try:
            return self.resolvers[kind]
        except KeyError:
            raise ResolverKindError(kind) from None

    def resolve(self, kind: str, path: str) -> Resolution | None:
        return self.get_resolver(kind).resolve(path)
