import json
import os
import sys

import httpx

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from support import run

from storefront_app.services.mailer import ConsoleEmailSender, HttpEmailSender, otp_message, reset_message


def make_sender(handler, api_key="re_test"):
    return HttpEmailSender(
        "https://mail.test/emails",
        api_key,
        "Shop <no-reply@shop.test>",
        transport=httpx.MockTransport(handler),
    )


def test_http_sender_posts_message():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "msg_1"})

    result = run(make_sender(handler).send("ana@x.com", "Hi", "Body"))
    assert result.success
    assert seen["auth"] == "Bearer re_test"
    assert seen["body"] == {
        "from": "Shop <no-reply@shop.test>",
        "to": ["ana@x.com"],
        "subject": "Hi",
        "text": "Body",
    }


def test_http_sender_reports_api_errors():
    result = run(make_sender(lambda request: httpx.Response(422)).send("ana@x.com", "Hi", "Body"))
    assert not result.success
    assert "422" in result.error


def test_http_sender_reports_transport_errors():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    result = run(make_sender(handler).send("ana@x.com", "Hi", "Body"))
    assert not result.success


def test_http_sender_without_key():
    result = run(make_sender(lambda request: httpx.Response(200), api_key="").send("a@x.com", "s", "b"))
    assert not result.success


def test_console_sender_always_succeeds():
    assert run(ConsoleEmailSender().send("ana@x.com", "Hi", "Body")).success


def test_message_bodies_carry_code_and_lifetime():
    subject, body = otp_message("Ana", "042317", 10)
    assert "042317" in body and "10 minutes" in body
    subject, body = reset_message("", "000123", 30)
    assert "000123" in body and "30 minutes" in body
