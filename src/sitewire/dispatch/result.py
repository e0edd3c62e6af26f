"""Outcome of running an app: a response, or the error that prevented one."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from ..app.response import Response


@dataclass(frozen=True)
class Success:
    response: Response
    ok = True


@dataclass(frozen=True)
class Failure:
    error: BaseException
    ok = False


Result = Union[Success, Failure]
