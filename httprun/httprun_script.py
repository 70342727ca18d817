"""
Runs response-handler scripts in an embedded JavaScript engine.

Each run gets its own V8 isolate. The `response` and `client` globals are
installed from prelude.js; all state the script touches (globals, outcomes,
log lines) lives in the isolate and is read back as JSON once the script
finishes, so nothing leaks from one run into the next except the returned
global-variable snapshot.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from py_mini_racer import JSEvalException, JSParseException, MiniRacer

from httprun.httprun_datatypes import HandlerResult, ResponseView, ScriptError, TestOutcome

logger = logging.getLogger(__name__)


def _response_payload(response: ResponseView) -> Dict[str, Any]:
    content_type = None
    if response.content_type is not None:
        content_type = {
            "mimeType": response.content_type.mime_type,
            "charset": response.content_type.charset,
        }
    return {
        "status": response.status,
        "headers": [[name, list(values)] for name, values in response.headers],
        "body": response.body_structured if response.has_structured_body else response.body_raw,
        "contentType": content_type,
    }


def _to_handler_result(harvested: str) -> HandlerResult:
    data = json.loads(harvested)
    return HandlerResult(
        global_vars=dict(data["globals"]),
        test_results=[
            TestOutcome(o["name"], bool(o["passed"]), o.get("failure_message"))
            for o in data["outcomes"]
        ],
        log_output=list(data["logs"]),
    )


class ScriptHost:
    """Executes one handler script per `run` call against a fresh isolate."""

    _prelude_source: Optional[str] = None

    def __init__(self):
        if ScriptHost._prelude_source is None:
            prelude_path = Path(__file__).parent / "prelude.js"
            ScriptHost._prelude_source = prelude_path.read_text(encoding="utf-8")
        self.prelude = ScriptHost._prelude_source

    def _harvest(self, ctx: MiniRacer) -> Optional[HandlerResult]:
        try:
            return _to_handler_result(ctx.eval("__httprunHarvest()"))
        except (JSParseException, JSEvalException):
            return None

    def run(
        self,
        script: str,
        response: ResponseView,
        existing_globals: Optional[Mapping[str, str]] = None,
    ) -> HandlerResult:
        """Runs `script` and returns the updated globals, outcomes and log lines.

        Raises ScriptError when the script cannot be parsed or throws outside
        of a `client.test` callback; the error carries any partial result.
        """
        seed = {
            "response": _response_payload(response),
            "globals": dict(existing_globals or {}),
        }
        ctx = MiniRacer()
        try:
            ctx.eval(f"({self.prelude})({json.dumps(seed)});")
        except (JSParseException, JSEvalException) as e:
            raise ScriptError(f"Failed to build handler globals: {e}") from e

        try:
            # Trailing `void 0` keeps the completion value out of the conversion layer
            ctx.eval(f"{script}\n;void 0;")
        except (JSParseException, JSEvalException) as e:
            partial = self._harvest(ctx)
            logger.debug("handler failed with %d outcome(s) captured",
                         len(partial.test_results) if partial else 0)
            raise ScriptError(str(e).strip(), partial=partial) from e

        result = self._harvest(ctx)
        if result is None:
            raise ScriptError("handler state could not be read back")
        return result


def execute_handler(
    script: str,
    response: ResponseView,
    existing_globals: Optional[Mapping[str, str]] = None,
) -> HandlerResult:
    return ScriptHost().run(script, response, existing_globals)
