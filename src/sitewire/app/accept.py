"""Accept header parsing and response type negotiation."""

from __future__ import annotations

from typing import Iterable


class Accept:
    """
    Content negotiation state for one request.

    Priorities come from the Accept header and may be overridden with
    set_priority(), e.g. to let a URL suffix outrank the header.
    """

    def __init__(self, header: str | None = None) -> None:
        self.header: str = header or ""
        self._entries: dict[str, float] = self._parse(self.header)
        self._overrides: dict[str, float] = {}

    @staticmethod
    def _parse(header: str) -> dict[str, float]:
        entries: dict[str, float] = {}
        if not header.strip():
            entries["*/*"] = 1.0
            return entries

        for item in header.split(","):
            parts = [p.strip() for p in item.split(";")]
            mime = parts[0].lower()
            if not mime:
                continue
            if "/" not in mime:
                mime = "*/*" if mime == "*" else f"{mime}/*"

            q = 1.0
            for param in parts[1:]:
                key, _, value = param.partition("=")
                if key.strip().lower() != "q":
                    continue
                try:
                    q = float(value.strip())
                except ValueError:
                    q = 0.0

            # keep the highest priority when a type is listed twice
            entries[mime] = max(q, entries.get(mime, q))
        return entries

    def set_priority(self, mime: str, q: float) -> "Accept":
        """Force the priority of an exact MIME type."""
        self._overrides[mime.lower()] = float(q)
        return self

    def priority(self, mime: str) -> float:
        """Priority of a MIME type, using the most specific matching entry."""
        mime = mime.lower()
        if mime in self._overrides:
            return self._overrides[mime]

        major = mime.split("/", 1)[0]
        for key in (mime, f"{major}/*", "*/*"):
            if key in self._entries:
                return self._entries[key]
        return 0.0

    def accepts(self, mime: str) -> bool:
        return self.priority(mime) > 0

    def best_response_type(self, candidates: Iterable[str]) -> str | None:
        """
        Pick the candidate with the highest priority.

        Ties keep candidate order. Returns None when nothing is acceptable.
        """
        best: str | None = None
        best_q = 0.0
        for mime in candidates:
            q = self.priority(mime)
            if q > best_q:
                best, best_q = mime, q
        return best

    def __str__(self) -> str:
        parts = [f"{m};q={q:g}" for m, q in self._overrides.items()]
        if self.header:
            parts.append(self.header)
        return ",".join(parts)
