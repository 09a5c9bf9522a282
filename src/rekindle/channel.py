"""Evaluation channel — how payloads reach the client runtime.

The transport itself (sockets, REPL connections) lives outside rekindle;
anything with an ``evaluate(source)`` method can carry payloads.
``InProcessChannel`` runs payloads against a namespace in this process,
which is how a Python client hosted next to the session is driven.
"""

from __future__ import annotations

import ast
from typing import Any, Protocol


class EvaluationChannel(Protocol):
    """Evaluates source text in the client and returns the result, or raises."""

    def evaluate(self, source: str) -> Any: ...


class InProcessChannel:
    """Executes payloads in a namespace and returns the last expression's value.

    Args:
        namespace: Globals the payload runs in.  Usually
            ``ClientRuntime.namespace()``.

    """

    def __init__(self, namespace: dict[str, Any]) -> None:
        self._namespace = namespace

    @property
    def namespace(self) -> dict[str, Any]:
        return self._namespace

    def evaluate(self, source: str) -> Any:
        tree = ast.parse(source, filename="<rekindle>", mode="exec")
        last: ast.expr | None = None
        if tree.body and isinstance(tree.body[-1], ast.Expr):
            last = tree.body.pop().value

        if tree.body:
            exec(compile(tree, "<rekindle>", "exec"), self._namespace)  # noqa: S102
        if last is None:
            return None
        expression = ast.Expression(body=last)
        return eval(compile(expression, "<rekindle>", "eval"), self._namespace)  # noqa: S307
