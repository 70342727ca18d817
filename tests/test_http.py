import httpx
import pytest

from httprun.httprun_datatypes import Header, HttpMethod, ParseError, Request, TransportError
from httprun.httprun_http import send_request


def _request(**kwargs):
    defaults = dict(method=HttpMethod.POST, url="http://example/api", line_number=3)
    defaults.update(kwargs)
    return Request(**defaults)


@pytest.mark.asyncio
async def test_send_request_builds_response_view():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["x_dup"] = request.headers.get_list("x-dup")
        seen["body"] = request.content
        return httpx.Response(
            201,
            headers=[("Content-Type", "application/json"), ("Set-Cookie", "a=1"), ("Set-Cookie", "b=2")],
            content=b'{"hello":"world"}',
        )

    req = _request(headers=[Header("X-Dup", "1"), Header("X-Dup", "2")], body='{"a":1}')
    response = await send_request(req, transport=httpx.MockTransport(handler))

    assert seen == {
        "method": "POST",
        "url": "http://example/api",
        "x_dup": ["1", "2"],
        "body": b'{"a":1}',
    }
    assert response.status == 201
    assert response.view.body_structured == {"hello": "world"}
    assert response.view.header_values("set-cookie") == ["a=1", "b=2"]
    assert response.view.content_type.mime_type == "application/json"
    assert response.elapsed_ms >= 0


@pytest.mark.asyncio
async def test_non_2xx_is_a_response_not_an_error():
    transport = httpx.MockTransport(lambda r: httpx.Response(503, content=b"down"))
    response = await send_request(_request(method=HttpMethod.GET), transport=transport)
    assert response.status == 503
    assert response.view.body_raw == "down"
    assert not response.view.has_structured_body


@pytest.mark.asyncio
async def test_transport_failure_is_wrapped():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError) as info:
        await send_request(_request(), transport=httpx.MockTransport(handler))
    assert "connection refused" in str(info.value)


@pytest.mark.asyncio
async def test_header_value_with_newline_is_rejected_with_line_number():
    req = _request(headers=[Header("X-Bad", "a\r\nInjected: 1")])
    with pytest.raises(ParseError) as info:
        await send_request(req, transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    assert info.value.line == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("value", ["José", "tab\tok\x7f", "emoji \U0001f600"])
async def test_non_ascii_header_value_is_rejected_before_sending(value):
    sent = []
    transport = httpx.MockTransport(lambda r: (sent.append(r), httpx.Response(200))[1])
    req = _request(headers=[Header("X-Name", value)])
    with pytest.raises(ParseError) as info:
        await send_request(req, transport=transport)
    assert info.value.line == 3
    assert sent == []


@pytest.mark.asyncio
async def test_tab_and_space_in_header_value_are_allowed():
    seen = {}

    def handler(request):
        seen["value"] = request.headers["x-list"]
        return httpx.Response(200)

    req = _request(headers=[Header("X-List", "a,\tb c")])
    await send_request(req, transport=httpx.MockTransport(handler))
    assert seen["value"] == "a,\tb c"
