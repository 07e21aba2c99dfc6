"""
Tests for HTTP-backed conditions and request resolution.
"""

import asyncio
import logging

import pytest

from dynaforms.core.condition_evaluator import EvaluationContext, evaluate_condition
from dynaforms.core.http_request import evaluate_response, resolve_http_request
from dynaforms.expr.errors import ExpressionError
from dynaforms.expr.expression_parser import default_expression_parser
from dynaforms.form.form_engine import FormEngine
from dynaforms.models.conditions import HttpCondition
from dynaforms.models.http import HttpRequestConfig

BLOCKED = {"admin", "root"}


def blocklist_transport(requests, fail=False):
    async def transport(request):
        requests.append(request)
        await asyncio.sleep(0.005)
        if fail:
            raise ConnectionError("service unavailable")
        return {"blocked": request.url.rsplit("=", 1)[-1] in BLOCKED}

    return transport


def username_form(http_transport=None, pending_value=None, username="ada"):
    condition = {
        "type": "http",
        "http": {"url": "/api/blocked", "queryParams": {"name": "formValue.username"}, "debounceMs": 0},
        "responseExpression": "response.blocked",
    }
    if pending_value is not None:
        condition["pendingValue"] = pending_value
    return FormEngine(
        {
            "fields": [
                {"key": "username", "type": "input", "value": username},
                {"key": "note", "type": "input"},
                {"key": "submit", "type": "submit", "logic": [{"type": "hidden", "condition": condition}]},
            ]
        },
        http_transport=http_transport,
    )


class TestHttpCondition:
    """Tests for conditions answered by an HTTP request."""

    @pytest.mark.asyncio
    async def test_pending_value_until_response(self):
        requests = []
        engine = username_form(blocklist_transport(requests), pending_value=True)
        submit = engine.require_field("submit")
        assert submit.hidden() is True
        await asyncio.sleep(0.03)
        assert submit.hidden() is False
        assert [r.url for r in requests] == ["/api/blocked?name=ada"]
        engine.destroy()

    @pytest.mark.asyncio
    async def test_pending_value_defaults_to_false(self):
        engine = username_form(blocklist_transport([]), username="admin")
        submit = engine.require_field("submit")
        assert submit.hidden() is False
        await asyncio.sleep(0.03)
        assert submit.hidden() is True
        engine.destroy()

    @pytest.mark.asyncio
    async def test_changed_request_is_resent(self):
        requests = []
        engine = username_form(blocklist_transport(requests))
        submit = engine.require_field("submit")
        await asyncio.sleep(0.03)
        engine.set_field_value("username", "root")
        await asyncio.sleep(0.03)
        assert submit.hidden() is True
        assert len(requests) == 2
        engine.destroy()

    @pytest.mark.asyncio
    async def test_unchanged_request_is_not_resent(self):
        requests = []
        engine = username_form(blocklist_transport(requests))
        await asyncio.sleep(0.03)
        engine.set_field_value("note", "hello")
        await asyncio.sleep(0.03)
        assert len(requests) == 1
        engine.destroy()

    @pytest.mark.asyncio
    async def test_failure_falls_back_to_pending_value(self, caplog):
        with caplog.at_level(logging.WARNING, logger="dynaforms.core.http_condition"):
            engine = username_form(blocklist_transport([], fail=True), pending_value=True)
            await asyncio.sleep(0.03)
        assert engine.require_field("submit").hidden() is True
        assert any(r.message == "http_condition_failed" for r in caplog.records)
        engine.destroy()

    def test_without_transport_keeps_pending_value(self, caplog):
        with caplog.at_level(logging.WARNING, logger="dynaforms.core.http_condition"):
            engine = username_form(pending_value=True)
        assert engine.require_field("submit").hidden() is True
        assert any(r.message == "http_condition_without_transport" for r in caplog.records)
        engine.destroy()

    def test_nested_http_condition_is_false(self, caplog):
        ctx = EvaluationContext(field_value=None, form_value={}, field_path="f")
        nested = {"type": "and", "conditions": [{"type": "http", "http": {"url": "/api/x"}}]}
        with caplog.at_level(logging.WARNING, logger="dynaforms.core.condition_evaluator"):
            assert evaluate_condition(nested, ctx) is False
        assert any(r.message == "http_condition_not_top_level" for r in caplog.records)

    def test_model_form(self):
        condition = HttpCondition.model_validate(
            {"type": "http", "http": {"url": "/api/x"}, "pendingValue": True, "responseExpression": "response.ok"}
        )
        assert condition.pending_value is True
        assert condition.http.debounce_ms is None


class TestResolveHttpRequest:
    """Tests for turning request configs into requests."""

    @staticmethod
    def context(form_value):
        return EvaluationContext(field_value=None, form_value=form_value, field_path="f")

    def test_query_params_are_encoded(self):
        config = {"url": "/api/search", "queryParams": {"q": "formValue.term", "page": "formValue.page"}}
        request = resolve_http_request(config, self.context({"term": "a b&c", "page": 2}))
        assert request.url == "/api/search?q=a+b%26c&page=2"
        assert request.method == "GET"

    def test_null_params_are_skipped(self):
        config = {"url": "/api/search", "queryParams": {"q": "formValue.term", "all": "true"}}
        request = resolve_http_request(config, self.context({}))
        assert request.url == "/api/search?all=true"

    def test_body_is_sent_as_is_by_default(self):
        config = HttpRequestConfig(url="/api/save", method="put", body={"name": "formValue.name"})
        request = resolve_http_request(config, self.context({"name": "Ada"}))
        assert request.method == "PUT"
        assert request.body == {"name": "formValue.name"}

    def test_expression_errors_propagate(self):
        config = {"url": "/api/search", "queryParams": {"q": "formValue.term.trim()"}}
        with pytest.raises(ExpressionError):
            resolve_http_request(config, self.context({}))

    def test_response_expression(self):
        parser = default_expression_parser
        assert evaluate_response({"ok": True}, "response.ok", parser) is True
        assert evaluate_response([1], None, parser) == [1]
