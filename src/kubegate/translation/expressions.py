"""Compile declarative match rules into the proxy's `vars` expressions.

A compiled expression is a list of 3 or 4 tokens:

    [subject, ("!")?, operator, value-or-set]

e.g. ``["http_content_type", "==", "text/plain"]`` or
``["arg_id", "!", "~~", ".*\\.php"]``.
"""

from enum import Enum
from typing import Any

from kubegate.core.exceptions import TranslateError
from kubegate.resources.route import ExpressionSubject, HTTPMatch, MatchExpression, ParamMatch


class Scope(str, Enum):
    """Request attribute an expression inspects."""

    QUERY = "Query"
    HEADER = "Header"
    COOKIE = "Cookie"
    PATH = "Path"
    VARIABLE = "Variable"


class Operator(str, Enum):
    """Comparison applied to the subject."""

    EQUAL = "Equal"
    NOT_EQUAL = "NotEqual"
    GREATER_THAN = "GreaterThan"
    GREATER_THAN_EQUAL = "GreaterThanEqual"
    LESS_THAN = "LessThan"
    LESS_THAN_EQUAL = "LessThanEqual"
    REGEX_MATCH = "RegexMatch"
    REGEX_NOT_MATCH = "RegexNotMatch"
    REGEX_MATCH_CI = "RegexMatchCI"
    REGEX_NOT_MATCH_CI = "RegexNotMatchCI"
    IN = "In"
    NOT_IN = "NotIn"


NEGATION = "!"

OPERATOR_SYMBOLS: dict[Operator, str] = {
    Operator.EQUAL: "==",
    Operator.NOT_EQUAL: "~=",
    Operator.GREATER_THAN: ">",
    Operator.GREATER_THAN_EQUAL: ">=",
    Operator.LESS_THAN: "<",
    Operator.LESS_THAN_EQUAL: "<=",
    Operator.REGEX_MATCH: "~~",
    Operator.REGEX_NOT_MATCH: "~~",
    Operator.REGEX_MATCH_CI: "~*",
    Operator.REGEX_NOT_MATCH_CI: "~*",
    Operator.IN: "in",
    Operator.NOT_IN: "in",
}

NEGATED_OPERATORS = frozenset(
    {Operator.NOT_IN, Operator.REGEX_NOT_MATCH, Operator.REGEX_NOT_MATCH_CI}
)
SET_OPERATORS = frozenset({Operator.IN, Operator.NOT_IN})

# Gateway API header/query match types.
PARAM_MATCH_OPERATORS = {
    "Exact": Operator.EQUAL,
    "RegularExpression": Operator.REGEX_MATCH,
}


def subject_key(subject: ExpressionSubject) -> str:
    """Map an expression subject to the proxy variable name.

    Raises:
        TranslateError: If the name is missing or the scope is unknown
    """
    if not subject.name and subject.scope != Scope.PATH.value:
        raise TranslateError("empty subject name")

    match subject.scope:
        case Scope.QUERY.value:
            return "arg_" + subject.name.lower()
        case Scope.HEADER.value:
            return "http_" + subject.name.lower().replace("-", "_")
        case Scope.COOKIE.value:
            return "cookie_" + subject.name
        case Scope.PATH.value:
            return "uri"
        case Scope.VARIABLE.value:
            return subject.name
        case _:
            raise TranslateError("bad subject name")


def compile_expression(expr: MatchExpression) -> list[Any]:
    """Compile one match expression.

    Args:
        expr: Declarative expression

    Returns:
        Token list understood by the proxy router

    Raises:
        TranslateError: On a missing subject name, unknown scope or operator,
            or a value/set that does not fit the operator
    """
    tokens: list[Any] = [subject_key(expr.subject)]

    try:
        op = Operator(expr.op)
    except ValueError:
        raise TranslateError("unknown operator") from None

    if op in NEGATED_OPERATORS:
        tokens.append(NEGATION)
    tokens.append(OPERATOR_SYMBOLS[op])

    if op in SET_OPERATORS:
        if not expr.set_values:
            raise TranslateError("empty set value")
        tokens.append(list(expr.set_values))
    elif expr.value is not None:
        tokens.append(expr.value)
    else:
        raise TranslateError("neither set nor value is provided")

    return tokens


def compile_expressions(exprs: list[MatchExpression]) -> list[list[Any]]:
    """Compile expressions in declaration order."""
    return [compile_expression(expr) for expr in exprs]


def _param_expression(scope: Scope, param: ParamMatch) -> MatchExpression:
    op = PARAM_MATCH_OPERATORS.get(param.type)
    if op is None:
        raise TranslateError(f"unsupported match type {param.type!r}", field=f"{scope.value}.type")
    return MatchExpression(
        subject=ExpressionSubject(scope=scope.value, name=param.name),
        op=op.value,
        value=param.value,
    )


def compile_match(match: HTTPMatch) -> list[list[Any]]:
    """Compile every expression-backed condition of a match rule.

    Header conditions come first, then query conditions, then the generic
    expressions, so the router evaluates them in a deterministic order.
    Paths, methods, hosts and remote addresses are carried by dedicated
    route fields and produce no expressions.
    """
    compiled = [compile_expression(_param_expression(Scope.HEADER, h)) for h in match.headers]
    compiled.extend(
        compile_expression(_param_expression(Scope.QUERY, q)) for q in match.query_params
    )
    compiled.extend(compile_expressions(match.exprs))
    return compiled
