"""Serializers for structured (JSON / XML) response bodies."""

from __future__ import annotations

from typing import Any, Callable
import json
import xml.etree.ElementTree as ET


Writer = Callable[[Any], str]


def write_json(data: Any) -> str:
    return json.dumps(data, ensure_ascii=False, default=str)


def _to_element(parent: ET.Element, key: str, value: Any) -> None:
    tag = key if key and key[0].isalpha() else f"item{key}"
    el = ET.SubElement(parent, tag)
    if isinstance(value, dict):
        for k, v in value.items():
            _to_element(el, str(k), v)
    elif isinstance(value, (list, tuple)):
        for v in value:
            _to_element(el, "item", v)
    elif value is not None:
        el.text = str(value)


def write_xml(data: Any) -> str:
    root = ET.Element("response")
    if isinstance(data, dict):
        for k, v in data.items():
            _to_element(root, str(k), v)
    else:
        _to_element(root, "value", data)
    return ET.tostring(root, encoding="unicode", xml_declaration=True)


class WriterRegistry:
    """
    MIME type -> serializer mapping.

    The registered types are the structured types offered during
    content negotiation of error bodies.
    """

    def __init__(self, with_defaults: bool = True) -> None:
        self._writers: dict[str, Writer] = {}
        if with_defaults:
            self.register("application/json", write_json)
            self.register("application/xml", write_xml)

    def register(self, mime: str, writer: Writer) -> None:
        self._writers[mime.lower()] = writer

    def mime_types(self) -> list[str]:
        return list(self._writers)

    def get(self, mime: str) -> Writer | None:
        return self._writers.get(mime.lower())

    def write(self, mime: str, data: Any) -> str:
        writer = self.get(mime)
        if writer is None:
            raise KeyError(mime)
        return writer(data)

    def __contains__(self, mime: object) -> bool:
        return isinstance(mime, str) and mime.lower() in self._writers


default_writers = WriterRegistry()
