"""Turning an ``HttpRequestConfig`` into a concrete ``HttpRequest``."""

from typing import Any, Mapping, Optional, Union
from urllib.parse import urlencode

from dynaforms.expr.coercion import to_js_string
from dynaforms.expr.expression_parser import ExpressionParser
from dynaforms.models.http import HttpRequestConfig
from dynaforms.validation.validator_types import HttpRequest

from .condition_evaluator import EvaluationContext


def as_request_config(config: Union[HttpRequestConfig, Mapping[str, Any]]) -> HttpRequestConfig:
    if isinstance(config, HttpRequestConfig):
        return config
    return HttpRequestConfig.model_validate(config)


def _query_value(value: Any) -> str:
    return value if isinstance(value, str) else to_js_string(value)


def resolve_http_request(
    config: Union[HttpRequestConfig, Mapping[str, Any]], ctx: EvaluationContext
) -> HttpRequest:
    """
    Evaluates a request config's expressions against ``ctx``.

    Query parameters are appended to the URL, skipping those that evaluate
    to None. Expression errors propagate to the caller.
    """
    config = as_request_config(config)
    bindings = ctx.bindings()
    parser = ctx.expression_parser

    url = config.url
    if config.query_params:
        params = []
        for name, expression in config.query_params.items():
            value = parser.evaluate(expression, bindings)
            if value is not None:
                params.append((name, _query_value(value)))
        if params:
            url = f"{url}{'&' if '?' in url else '?'}{urlencode(params)}"

    body = config.body
    if config.evaluate_body_expressions and isinstance(body, Mapping):
        body = {
            key: parser.evaluate(value, bindings) if isinstance(value, str) else value
            for key, value in body.items()
        }

    return HttpRequest(
        url=url,
        method=config.method.upper(),
        body=body,
        headers=dict(config.headers or {}),
    )


def evaluate_response(response: Any, response_expression: Optional[str], parser: ExpressionParser) -> Any:
    """Applies ``response_expression`` to a response, or returns it unchanged."""
    if not response_expression:
        return response
    return parser.evaluate(response_expression, {"response": response})
