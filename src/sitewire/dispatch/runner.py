"""
Run a resolved app and turn whatever it does into a Result.

An app is a Python script, an import string, a class, an object or a
plain function. Scripts run with the dispatcher's variables as globals and
hand back a `response` or a `controller`. Controllers are objects whose
methods are picked by the first URL argument; method parameters are bound
from URL arguments and known variables through ParameterBinders.

Apps should not write to stdout. Anything they print is captured and
logged at debug level instead of being sent to the client.
"""

from __future__ import annotations

from contextvars import ContextVar
from dataclasses import dataclass
from importlib import import_module
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, TextIO
import inspect
import io
import logging
import re
import runpy
import sys
import threading
import typing

from ..app.model import Model
from ..app.response import JsonResponse, Response, ResponseInterrupt
from ..core.error import HTTPError, ModelNotFoundError
from ..core.log import NOTICE, get_logger
from .result import Failure, Result, Success


_EMPTY = inspect.Parameter.empty
_INT_RE = re.compile(r"^[+-]?\d+$")
_BUILTIN_NAMES: dict[str, type] = {"int": int, "str": str, "float": float, "bool": bool}
_SCALARS = (str, bytes, int, float, bool, list, tuple, dict, set, frozenset, type(None))

# methods that are never reachable as a controller
_RESERVED = frozenset({"set_logger"})


class Arguments(list[str]):
    """The URL arguments left after the route, consumed from the front."""

    def shift(self) -> str:
        return self.pop(0)

    def unshift(self, value: str) -> None:
        self.insert(0, value)


def import_string(target: str) -> Any:
    """Import "pkg.module:attr" or "pkg.module.attr"."""
    if ":" in target:
        module_name, _, attr = target.partition(":")
    else:
        module_name, _, attr = target.rpartition(".")
    if not module_name or not attr:
        raise ImportError(f"Not an import path: '{target}'")

    obj: Any = import_module(module_name)
    for part in attr.split("."):
        obj = getattr(obj, part)
    return obj


# ====================
# output capture
# ====================

# buffers receiving stdout in the current thread or task, innermost last
_stdout_stack: ContextVar[tuple[io.StringIO, ...]] = ContextVar("sitewire_stdout_stack", default=())
_install_lock = threading.Lock()


class _StdoutProxy:
    """
    Stands in for sys.stdout: writes go to the innermost capture buffer of
    the current context, or to the wrapped stream when nothing captures.
    """

    def __init__(self, stream: TextIO) -> None:
        self.stream: TextIO = stream

    def _target(self) -> TextIO:
        stack = _stdout_stack.get()
        return stack[-1] if stack else self.stream

    def write(self, text: str) -> int:
        return self._target().write(text)

    def flush(self) -> None:
        self._target().flush()

    def __getattr__(self, name: str) -> Any:
        return getattr(self._target(), name)


def _install_proxy() -> None:
    with _install_lock:
        if not isinstance(sys.stdout, _StdoutProxy):
            sys.stdout = _StdoutProxy(sys.stdout)


class OutputCapture:
    """
    A stack of stdout sinks.

    start() pushes a fresh buffer that receives what the current thread
    or task prints; drain(level) pops every buffer above level and logs
    what was written, line by line. Other threads are not affected.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._buffers: list[io.StringIO] = []
        self.logger = logger or get_logger(self)

    @staticmethod
    def current() -> io.StringIO | None:
        """The buffer that receives stdout in this context, if any."""
        stack = _stdout_stack.get()
        return stack[-1] if stack else None

    @property
    def level(self) -> int:
        return len(self._buffers)

    def start(self) -> io.StringIO:
        _install_proxy()
        buf = io.StringIO()
        self._buffers.append(buf)
        _stdout_stack.set(_stdout_stack.get() + (buf,))
        return buf

    def drain(self, level: int = 0) -> list[str]:
        lines: list[str] = []
        count = 0
        while len(self._buffers) > level:
            buf = self._buffers.pop()
            _stdout_stack.set(tuple(b for b in _stdout_stack.get() if b is not buf))
            count += 1
            output = buf.getvalue().strip()
            if not output:
                continue
            for n, line in enumerate(output.split("\n"), 1):
                self.logger.debug("Script output: %d/%d: %s", count, n, line)
                lines.append(line)
        return lines

    def __enter__(self) -> io.StringIO:
        self._entry_level = self.level
        return self.start()

    def __exit__(self, *exc: Any) -> None:
        self.drain(self._entry_level)


# ====================
# parameter binding
# ====================

@dataclass
class ParameterSlot:
    """One declared parameter of a controller method."""
    index: int
    name: str
    annotation: Any
    default: Any
    last: bool

    @property
    def has_default(self) -> bool:
        return self.default is not _EMPTY

    @property
    def type_name(self) -> str:
        ann = self.annotation
        return ann.__name__ if isinstance(ann, type) else str(ann)


@dataclass
class BindContext:
    arguments: Arguments
    variables: Mapping[str, Any]
    instances: Mapping[type, Any]
    consumed: int = 0


Predicate = Callable[[BindContext, ParameterSlot], bool]
Resolve = Callable[[BindContext, ParameterSlot], Any]


def _next_argument(ctx: BindContext, slot: ParameterSlot, message: str) -> str | None:
    """The next URL argument, or None when the parameter falls back to its default."""
    ctx.consumed += 1
    if ctx.arguments:
        return ctx.arguments.shift()
    if slot.has_default:
        return None
    raise HTTPError(400, message)


def _is_untyped(ctx: BindContext, slot: ParameterSlot) -> bool:
    return slot.annotation is _EMPTY


def _bind_untyped(ctx: BindContext, slot: ParameterSlot) -> Any:
    value = _next_argument(ctx, slot, f"Invalid arguments - expecting argument {ctx.consumed + 1}")
    return slot.default if value is None else value


def _is_named_variable(ctx: BindContext, slot: ParameterSlot) -> bool:
    return slot.name in ctx.variables and type(ctx.variables[slot.name]) is slot.annotation


def _bind_named_variable(ctx: BindContext, slot: ParameterSlot) -> Any:
    return ctx.variables[slot.name]


def _is_argument_bag(ctx: BindContext, slot: ParameterSlot) -> bool:
    return isinstance(slot.annotation, type) and issubclass(slot.annotation, Arguments)


def _bind_argument_bag(ctx: BindContext, slot: ParameterSlot) -> Any:
    if not slot.last:
        raise HTTPError(500, "Arguments must be last parameter")
    return ctx.arguments


def _is_instance(ctx: BindContext, slot: ParameterSlot) -> bool:
    return isinstance(slot.annotation, type) and slot.annotation in ctx.instances


def _bind_instance(ctx: BindContext, slot: ParameterSlot) -> Any:
    return ctx.instances[slot.annotation]


def _is_scalar(ctx: BindContext, slot: ParameterSlot) -> bool:
    return slot.annotation in (int, str)


def _bind_scalar(ctx: BindContext, slot: ParameterSlot) -> Any:
    kind = "integer" if slot.annotation is int else "string"
    message = f"Invalid arguments - missing {kind} as argument {slot.index}"
    value = _next_argument(ctx, slot, message)
    if value is None:
        return slot.default
    if slot.annotation is int:
        if not _INT_RE.match(str(value)):
            raise HTTPError(400, message)
        return int(value)
    return str(value)


def _is_model(ctx: BindContext, slot: ParameterSlot) -> bool:
    return isinstance(slot.annotation, type) and issubclass(slot.annotation, Model)


def _bind_model(ctx: BindContext, slot: ParameterSlot) -> Any:
    object_id = _next_argument(
        ctx, slot, f"Invalid arguments - missing identifier as argument {slot.index}"
    )
    if object_id is None:
        return slot.default
    try:
        return slot.annotation.get(object_id)
    except ModelNotFoundError as e:
        raise HTTPError(404, e.message, cause=e) from e


def _always(ctx: BindContext, slot: ParameterSlot) -> bool:
    return True


def _bind_invalid(ctx: BindContext, slot: ParameterSlot) -> Any:
    raise HTTPError(500, f"Invalid parameter type: {slot.type_name}")


DEFAULT_BINDERS: tuple[tuple[Predicate, Resolve], ...] = (
    (_is_untyped, _bind_untyped),
    (_is_named_variable, _bind_named_variable),
    (_is_argument_bag, _bind_argument_bag),
    (_is_instance, _bind_instance),
    (_is_scalar, _bind_scalar),
    (_is_model, _bind_model),
    (_always, _bind_invalid),
)


class ParameterBinders:
    """
    Ordered (predicate, resolver) pairs; the first matching predicate
    decides how a parameter gets its value.
    """

    def __init__(self, binders: Iterable[tuple[Predicate, Resolve]] | None = None) -> None:
        self.binders: list[tuple[Predicate, Resolve]] = list(binders or DEFAULT_BINDERS)

    def add(self, predicate: Predicate, resolve: Resolve, position: int = 0) -> None:
        """Register a binder, by default ahead of the built-in ones."""
        self.binders.insert(position, (predicate, resolve))

    def resolve(self, ctx: BindContext, slot: ParameterSlot) -> Any:
        for predicate, resolve in self.binders:
            if predicate(ctx, slot):
                return resolve(ctx, slot)
        return _bind_invalid(ctx, slot)


def _type_hints(func: Any) -> dict[str, Any]:
    try:
        return typing.get_type_hints(func)
    except Exception:
        return {}


def _annotation(param: inspect.Parameter, hints: Mapping[str, Any]) -> Any:
    ann = hints.get(param.name, param.annotation)
    if isinstance(ann, str):
        return _BUILTIN_NAMES.get(ann, ann)
    return ann


def _public_attributes(obj: Any) -> set[str]:
    """Names of public, non-callable attributes of obj and its classes."""
    names: set[str] = set()
    for klass in type(obj).__mro__:
        if klass is object:
            continue
        names.update(getattr(klass, "__annotations__", {}))
        for name, value in vars(klass).items():
            if isinstance(value, (staticmethod, classmethod, property)) or callable(value):
                continue
            names.add(name)
    names.update(getattr(obj, "__dict__", {}))
    return {n for n in names if not n.startswith("_")}


# ====================
# AppRunner
# ====================

class AppRunner:
    """
    Execute one app and make sure it produces a response.
    """

    def __init__(
        self,
        app: Any,
        arguments: Iterable[str] | None = None,
        *,
        output: OutputCapture | None = None,
        binders: ParameterBinders | None = None,
    ) -> None:
        self.app: Any = app
        self.arguments: Arguments = Arguments(arguments or [])
        self.variables: dict[str, Any] = {}
        self.instances: dict[type, Any] = {}
        self.logger = get_logger(self)
        self.output: OutputCapture = output or OutputCapture(self.logger)
        self.binders: ParameterBinders = binders or ParameterBinders()
        self.set_variable("output", self.output)

    # -------------------------
    # variables
    # -------------------------

    def set_variable(self, name: str, value: Any, as_instance: bool = True) -> "AppRunner":
        """
        Make value available to the app as name.

        Objects are also recorded by their type so that a parameter
        annotated with that type receives them.
        """
        self.variables[name] = value
        if as_instance and not isinstance(value, _SCALARS) and not inspect.isclass(value):
            self.instances[type(value)] = value
        return self

    def set_variables(self, variables: Mapping[str, Any]) -> "AppRunner":
        for name, value in variables.items():
            self.set_variable(name, value)
        return self

    def get_variable(self, name: str) -> Any:
        return self.variables.get(name)

    @property
    def url(self) -> Any:
        return getattr(self.variables.get("request"), "url", None)

    # -------------------------
    # execution
    # -------------------------

    def execute(self) -> Result:
        """
        Run the app.

        The stdout level present on entry is restored on every exit path.
        """
        level = self.output.level
        self.output.start()
        try:
            response = self._normalize(self._run_app())
            if response is not None and not isinstance(response, Response):
                response = self._normalize(self.reflect(response))

            if isinstance(response, Response):
                self._log_response(response)
                return Success(response)

            raise HTTPError(500, "App did not produce any response")

        except ResponseInterrupt as e:
            self._log_response(e.response)
            return Success(e.response)
        except HTTPError as e:
            self.logger.debug("While executing controller: %s", self.app)
            self.logger.info("%s - %s (%s)", e.status_text, self.url, e.message)
            return Failure(e)
        except Exception as e:
            self.logger.debug("While executing controller: %s", self.app)
            self.logger.log(
                NOTICE,
                "Unexpected exception of type %s thrown while processing request to URL: %s: %s",
                type(e).__name__, self.url, e,
            )
            return Failure(e)
        finally:
            self.output.drain(level)

    def _log_response(self, response: Response) -> None:
        self.logger.info("%s - %s", response.status_text, self.url)

    @staticmethod
    def _normalize(result: Any) -> Any:
        # template renderers hand back errors instead of raising them
        if isinstance(result, HTTPError):
            raise result
        if isinstance(result, dict):
            return JsonResponse(result)
        return result

    def _run_app(self) -> Any:
        app = self.app
        if isinstance(app, Path) or (isinstance(app, str) and app.endswith(".py")):
            return self._run_script(Path(app))
        return app

    def _run_script(self, path: Path) -> Any:
        """Run a script with the variables as globals; return its response or controller."""
        init_globals = {
            **self.variables,
            "arguments": self.arguments,
            "url_args": self.arguments,
            "url": self.url,
            "logger": get_logger(f"sitewire.app.{path.stem}"),
        }
        self.logger.debug("Including %s", path)
        namespace = runpy.run_path(str(path), init_globals=init_globals, run_name="__sitewire_app__")

        for key in ("response", "controller"):
            if namespace.get(key) is not None:
                return namespace[key]
        return None

    # -------------------------
    # controllers
    # -------------------------

    def reflect(self, obj: Any) -> Any:
        """
        Call the right method of a controller.

        A string is imported first and a class is instantiated. For an
        object, the first URL argument names the method (see
        find_controller); a plain function is called directly.
        """
        if isinstance(obj, str):
            obj = import_string(obj)
        if inspect.isclass(obj):
            obj = self.instantiate(obj)
        if isinstance(obj, Response):
            return obj

        if inspect.isroutine(obj):
            args, kwargs = self.bind(obj)
            return obj(*args, **kwargs)

        controller = self.find_controller(obj)
        self.inject_variables(obj)

        method = getattr(obj, controller)
        args, kwargs = self.bind(method)
        self.logger.debug("Calling %s.%s", type(obj).__name__, controller)
        return method(*args, **kwargs)

    def instantiate(self, cls: type) -> Any:
        """Create cls, passing constructor parameters known by name or type."""
        try:
            sig = inspect.signature(cls)
        except (TypeError, ValueError):
            return cls()

        hints = _type_hints(cls.__init__)
        kwargs: dict[str, Any] = {}
        for param in sig.parameters.values():
            if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
                continue
            ann = _annotation(param, hints)
            if param.name in self.variables:
                kwargs[param.name] = self.variables[param.name]
            elif isinstance(ann, type) and ann in self.instances:
                kwargs[param.name] = self.instances[ann]
            elif param.default is _EMPTY:
                raise HTTPError(
                    500, f"Cannot instantiate {cls.__name__}: no value for parameter '{param.name}'"
                )
        return cls(**kwargs)

    def find_controller(self, obj: Any) -> str:
        """
        Name of the method to call: the first URL argument, without any
        suffix. Falls back to index, leaving the argument in place.
        """
        arg = self.arguments.shift() if self.arguments else None
        controller = arg.split(".", 1)[0] if arg is not None else None

        if (
            controller
            and not controller.startswith("_")
            and controller not in _RESERVED
            and callable(getattr(obj, controller, None))
        ):
            return controller

        if callable(getattr(obj, "index", None)):
            if arg is not None:
                self.arguments.unshift(arg)
            return "index"

        raise HTTPError(404, f"Unknown controller: {controller or ''}")

    def inject_variables(self, obj: Any) -> None:
        """
        Fill public attributes of the controller: matching variables,
        `arguments` and `logger`. set_logger() is called when present.
        """
        names = _public_attributes(obj)
        for name, value in self.variables.items():
            if name in names:
                setattr(obj, name, value)

        if "arguments" in names:
            obj.arguments = self.arguments

        logger = get_logger(obj)
        if "logger" in names:
            obj.logger = logger

        setter = getattr(obj, "set_logger", None)
        if callable(setter):
            setter(logger)

    def bind(self, func: Callable[..., Any]) -> tuple[list[Any], dict[str, Any]]:
        """Values for the parameters of func, in declaration order."""
        sig = inspect.signature(func)
        hints = _type_hints(func)
        params = [p for p in sig.parameters.values() if p.kind is not p.VAR_KEYWORD]

        ctx = BindContext(self.arguments, self.variables, self.instances)
        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        for index, param in enumerate(params):
            if param.kind is param.VAR_POSITIONAL:
                args.extend(self.arguments)
                self.arguments.clear()
                continue

            slot = ParameterSlot(
                index=index,
                name=param.name,
                annotation=_annotation(param, hints),
                default=param.default,
                last=index == len(params) - 1,
            )
            value = self.binders.resolve(ctx, slot)
            if param.kind is param.KEYWORD_ONLY:
                kwargs[param.name] = value
            else:
                args.append(value)
        return args, kwargs
