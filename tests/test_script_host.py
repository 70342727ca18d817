import pytest

from httprun.httprun_datatypes import ScriptError, TestOutcome
from httprun.httprun_response import build_response
from httprun.httprun_script import ScriptHost, execute_handler


@pytest.fixture
def json_response():
    return build_response(
        200,
        [("Content-Type", "application/json; charset=utf-8"), ("X-Multi", "a"), ("x-multi", "b")],
        '{"totalElements": 12, "items": [{"id": 1}, {"id": 2}], "ok": true}',
    )


@pytest.fixture
def text_response():
    return build_response(404, [], "not found")


def test_globals_persist_across_handler_runs(json_response):
    first = execute_handler('client.global.set("totalElements", response.body.totalElements);', json_response)
    assert first.global_vars == {"totalElements": "12"}

    second = execute_handler(
        """
        client.test("Global persists", function() {
            var expected = client.global.get("totalElements");
            client.assert(expected === 12, "expected 12 but got " + expected);
        });
        """,
        json_response,
        first.global_vars,
    )
    assert second.test_results == [TestOutcome("Global persists", True, None)]


def test_global_get_restores_types(json_response):
    result = execute_handler(
        """
        client.global.set("num", 42);
        client.global.set("float", 3.14);
        client.global.set("str", "hello");
        client.global.set("t", true);
        client.global.set("f", false);
        client.global.set("numeric_text", "3.14");

        client.test("Number", function() { client.assert(client.global.get("num") === 42); });
        client.test("Float", function() { client.assert(client.global.get("float") === 3.14); });
        client.test("String", function() { client.assert(client.global.get("str") === "hello"); });
        client.test("True", function() { client.assert(client.global.get("t") === true); });
        client.test("False", function() { client.assert(client.global.get("f") === false); });
        client.test("Numeric text", function() { client.assert(client.global.get("numeric_text") === 3.14); });
        client.test("Missing", function() { client.assert(client.global.get("nope") === undefined); });
        """,
        json_response,
    )
    assert all(r.passed for r in result.test_results), result.test_results
    assert len(result.test_results) == 7
    assert result.global_vars == {
        "num": "42",
        "float": "3.14",
        "str": "hello",
        "t": "true",
        "f": "false",
        "numeric_text": "3.14",
    }


def test_integral_floats_are_stored_without_decimal_point(json_response):
    result = execute_handler('client.global.set("n", 5.0); client.global.set("big", 1e18);', json_response)
    assert result.global_vars == {"n": "5", "big": "1000000000000000000"}


def test_existing_globals_are_returned_with_updates(json_response):
    result = execute_handler('client.global.set("b", "new");', json_response, {"a": "1", "b": "old"})
    assert result.global_vars == {"a": "1", "b": "new"}


def test_failing_assert_inside_test_records_one_outcome(json_response):
    result = execute_handler(
        'client.test("n", function() { client.assert(false, "boom"); });',
        json_response,
    )
    assert result.test_results == [TestOutcome("boom", False, "boom")]


def test_assert_default_message(json_response):
    result = execute_handler("client.assert(0);", json_response)
    assert result.test_results == [TestOutcome("Assertion failed", False, "Assertion failed")]


def test_passing_assert_records_nothing_on_its_own(json_response):
    result = execute_handler('client.assert(response.status === 200, "status");', json_response)
    assert result.test_results == []


def test_exception_inside_test_is_a_failed_outcome(json_response):
    result = execute_handler(
        """
        client.test("throws", function() { throw new Error("kaput"); });
        client.test("after", function() {});
        """,
        json_response,
    )
    assert len(result.test_results) == 2
    failed, passed = result.test_results
    assert failed.name == "throws" and not failed.passed
    assert "kaput" in failed.failure_message
    assert passed == TestOutcome("after", True, None)


def test_response_object(json_response):
    result = execute_handler(
        """
        client.log(response.status, response.body.items.length, response.body.items[1].id);
        client.log(response.headers.valueOf("X-MULTI"), response.headers.valuesOf("x-multi").join(","));
        client.log(response.headers.valueOf("missing"), response.headers.valuesOf("missing").length);
        client.log(response.contentType.mimeType, response.contentType.charset);
        """,
        json_response,
    )
    assert result.log_output == [
        "200 2 2",
        "a a,b",
        "null 0",
        "application/json utf-8",
    ]


def test_raw_body_and_missing_content_type(text_response):
    result = execute_handler(
        'client.log(typeof response.body, response.body, response.contentType === null);',
        text_response,
    )
    assert result.log_output == ["string not found true"]


def test_response_is_read_only(json_response):
    result = execute_handler(
        """
        response.status = 500;
        response.body.totalElements = 0;
        client.log(response.status, response.body.totalElements);
        """,
        json_response,
    )
    assert result.log_output == ["200 12"]


def test_syntax_error_raises_script_error(json_response):
    with pytest.raises(ScriptError):
        execute_handler("client.test(", json_response)


def test_uncaught_exception_keeps_partial_outcomes(json_response):
    with pytest.raises(ScriptError) as info:
        execute_handler(
            """
            client.test("first", function() {});
            client.global.set("x", 1);
            undefinedFunction();
            """,
            json_response,
        )
    partial = info.value.partial
    assert partial is not None
    assert partial.test_results == [TestOutcome("first", True, None)]


def test_runs_do_not_share_interpreter_state(json_response):
    host = ScriptHost()
    host.run("var leaked = 1; globalThis.alsoLeaked = 2;", json_response)
    result = host.run("client.log(typeof leaked, typeof alsoLeaked);", json_response)
    assert result.log_output == ["undefined undefined"]
