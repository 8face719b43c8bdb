"""Build event filters backed by CEL expressions."""

from __future__ import annotations

from typing import Any, Protocol

import celpy
from celpy import celtypes
from celpy.celparser import CELParseError
from celpy.evaluation import CELEvalError

from cbnotify.build import Build, BuildStatus
from cbnotify.errors import InvalidFilterError
from cbnotify.utils.logging import get_logger

log = get_logger(__name__)


class EventFilter(Protocol):
    """Anything that can decide whether a build event should be skipped."""

    def apply(self, build: Build) -> bool: ...


# Exposes enum constants so expressions can say Build.Status.SUCCESS
_BUILD_CONSTANTS = celpy.json_to_cel(
    {"Status": {status.name: status.value for status in BuildStatus}}
)


def build_activation(build: Build) -> dict[str, Any]:
    """Variables visible to a filter expression."""
    return {
        "build": celpy.json_to_cel(build.model_dump(mode="json")),
        "Build": _BUILD_CONSTANTS,
    }


class CELPredicate:
    """A compiled CEL expression evaluated against each build."""

    def __init__(self, expression: str, program: celpy.Runner) -> None:
        self.expression = expression
        self._program = program

    def apply(self, build: Build) -> bool:
        try:
            result = self._program.evaluate(build_activation(build))
        except CELEvalError as e:
            log.warning("filter_eval_failed", build_id=build.id, error=str(e))
            return False
        if not isinstance(result, celtypes.BoolType):
            log.warning(
                "filter_not_boolean",
                build_id=build.id,
                result_type=type(result).__name__,
            )
            return False
        return bool(result)


def make_cel_predicate(expression: str) -> CELPredicate:
    """Compile a filter expression.

    Raises InvalidFilterError if the expression does not parse.
    """
    env = celpy.Environment()
    try:
        ast = env.compile(expression)
    except CELParseError as e:
        raise InvalidFilterError(f"failed to make a CEL predicate: {e}") from e
    return CELPredicate(expression, env.program(ast))
