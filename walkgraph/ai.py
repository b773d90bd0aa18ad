"""Functions fulfilled by a text-generation model.

A function decorated with ``by_model`` has no body of its own: calling it
sends its signature, docstring and arguments to a Model and validates the
answer against the declared return type.

Usage:
    class Priority(Enum):
        LOW = "low"
        HIGH = "high"

    @by_model(my_model)
    def triage(title: str) -> Priority:
        '''Rate how urgent a task is.'''

    priority = await triage("Fix the outage")
"""

import enum
import functools
import inspect
import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Type,
    Union,
    get_type_hints,
)

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic.errors import PydanticInvalidForJsonSchema, PydanticSchemaGenerationError

from walkgraph.exceptions import GenerationError, TypeMismatchError

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?```$", re.DOTALL)
_ANY_ADAPTER: TypeAdapter = TypeAdapter(Any)


@dataclass
class GenerationRequest:
    """Everything a model needs to fulfil one call.

    Attributes:
        name: Function name
        signature: Function signature as source text
        docstring: Function docstring ("" if none)
        arguments: Bound arguments, JSON-compatible
        return_schema: JSON schema of the declared return type
    """

    name: str
    signature: str
    docstring: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    return_schema: Dict[str, Any] = field(default_factory=dict)

    def to_prompt(self) -> str:
        """Render the request as a single prompt string."""
        parts = [f"def {self.name}{self.signature}"]
        if self.docstring:
            parts.append(self.docstring)
        parts.append("Arguments:\n" + json.dumps(self.arguments, indent=2, default=str))
        parts.append(
            "Respond with JSON only, matching this schema:\n"
            + json.dumps(self.return_schema, indent=2)
        )
        return "\n\n".join(parts)


class Model(ABC):
    """Text generation backend used by ``by_model``."""

    @abstractmethod
    def generate(self, request: GenerationRequest) -> Union[str, Awaitable[str]]:
        """Produce the raw answer for a request; may be sync or async."""


class CallableModel(Model):
    """Model backed by a plain (sync or async) function of the request."""

    def __init__(self, func: Callable[[GenerationRequest], Any]):
        self._func = func

    def generate(self, request: GenerationRequest) -> Union[str, Awaitable[str]]:
        return self._func(request)


def _strip_fence(raw: str) -> str:
    text = raw.strip()
    match = _FENCE.match(text)
    return match.group(1).strip() if match else text


def _parse_enum(enum_cls: Type[enum.Enum], adapter: TypeAdapter, text: str) -> Any:
    for candidate in (text, text.strip("\"'")):
        try:
            return adapter.validate_python(candidate)
        except PydanticValidationError:
            pass
        try:
            return adapter.validate_json(candidate)
        except PydanticValidationError:
            pass
        name = candidate.rsplit(".", 1)[-1]
        if name in enum_cls.__members__:
            return enum_cls[name]
    raise ValueError(f"'{text}' is not a member of {enum_cls.__name__}")


def parse_output(return_type: Any, adapter: TypeAdapter, raw: Any) -> Any:
    """Validate a model answer against the declared return type.

    Strings are read as JSON first; a plain string answer is accepted for
    ``str`` returns, and enums also accept member names.

    Raises:
        ValueError: The answer does not satisfy the return type
    """
    if not isinstance(raw, str):
        return adapter.validate_python(raw)

    text = _strip_fence(raw)
    if inspect.isclass(return_type) and issubclass(return_type, enum.Enum):
        return _parse_enum(return_type, adapter, text)
    try:
        return adapter.validate_json(text)
    except PydanticValidationError:
        if return_type is str:
            return text
        raise


def by_model(model: Model) -> Callable[[Callable[..., Any]], Callable[..., Awaitable[Any]]]:
    """Delegate a bodiless function to ``model``.

    The decorated function becomes a coroutine function. Model errors and
    answers that violate the return annotation raise GenerationError; the
    call is never retried.

    Raises:
        TypeMismatchError: The function has no usable return annotation
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Awaitable[Any]]:
        hints = get_type_hints(func)
        if "return" not in hints:
            raise TypeMismatchError(
                f"{func.__name__} needs a return annotation to be model-delegated",
                details={"function": func.__name__},
            )
        return_type = hints["return"]
        try:
            adapter: TypeAdapter = TypeAdapter(return_type)
            return_schema = adapter.json_schema()
        except (PydanticSchemaGenerationError, PydanticInvalidForJsonSchema) as e:
            raise TypeMismatchError(
                f"Return type of {func.__name__} cannot be validated: {e}",
                details={"function": func.__name__},
            ) from e
        signature = inspect.signature(func)

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            bound = signature.bind(*args, **kwargs)
            bound.apply_defaults()
            request = GenerationRequest(
                name=func.__name__,
                signature=str(signature),
                docstring=inspect.getdoc(func) or "",
                arguments={
                    name: _ANY_ADAPTER.dump_python(value, mode="json")
                    for name, value in bound.arguments.items()
                },
                return_schema=return_schema,
            )
            try:
                raw = model.generate(request)
                if inspect.isawaitable(raw):
                    raw = await raw
            except Exception as e:
                logger.warning("Model call for %s failed: %s", func.__name__, e)
                raise GenerationError(
                    f"Model failed to generate {func.__name__}: {e}",
                    details={"function": func.__name__, "error_type": type(e).__name__},
                ) from e

            try:
                return parse_output(return_type, adapter, raw)
            except ValueError as e:
                raise GenerationError(
                    f"Model output for {func.__name__} does not match its return type",
                    details={"function": func.__name__, "output": str(raw)[:500]},
                ) from e

        wrapper.model = model  # type: ignore[attr-defined]
        return wrapper

    return decorator


__all__ = [
    "GenerationRequest",
    "Model",
    "CallableModel",
    "by_model",
    "parse_output",
]
