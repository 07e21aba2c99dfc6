"""
HTTP request models shared by HTTP conditions and HTTP derivations.

``queryParams`` values are expressions evaluated against the field's
evaluation context. ``body`` is sent as is unless
``evaluateBodyExpressions`` is set, in which case each top-level string
value of a mapping body is evaluated as an expression too.
"""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_HTTP_DEBOUNCE_MS = 300

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE", "get", "post", "put", "patch", "delete"]


class HttpRequestConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    url: str = Field(min_length=1)
    method: HttpMethod = "GET"
    query_params: Optional[Dict[str, str]] = Field(default=None, alias="queryParams")
    body: Any = None
    evaluate_body_expressions: bool = Field(default=False, alias="evaluateBodyExpressions")
    headers: Optional[Dict[str, str]] = None
    debounce_ms: Optional[int] = Field(default=None, ge=0, alias="debounceMs")

    def expressions(self) -> Dict[str, str]:
        """Every expression the request evaluates, keyed by where it sits."""
        found = {f"queryParams.{name}": expression for name, expression in (self.query_params or {}).items()}
        if self.evaluate_body_expressions and isinstance(self.body, dict):
            for key, value in self.body.items():
                if isinstance(value, str):
                    found[f"body.{key}"] = value
        return found
