import json

import httpx
import pytest

from microlearn.exceptions import NotificationDeliveryError
from microlearn.services.notifications import NotificationSender


async def test_session_message_posts_text_with_bearer_key(sender, provider):
    await sender.send_session_message("+919876543210", "Hello there")

    assert len(provider.requests) == 1
    request = provider.requests[0]
    assert request.method == "POST"
    assert request.url.path == "/8076/api/v1/sendSessionMessage/919876543210"
    assert request.headers["Authorization"] == "Bearer test-key"
    assert json.loads(request.content) == {"messageText": "Hello there"}


async def test_interactive_message_payload(sender, provider):
    await sender.send_interactive_buttons_message(
        "+919876543210", "Course Assigned!", "Hi Asha", ["Let's MicroLearn", "Later"]
    )

    request = provider.interactive_messages[0]
    assert request.url.path == "/8076/api/v1/sendInteractiveButtonsMessage"
    assert request.url.params["whatsappNumber"] == "919876543210"
    assert json.loads(request.content) == {
        "header": {"type": "Text", "text": "Course Assigned!"},
        "body": "Hi Asha",
        "buttons": [{"text": "Let's MicroLearn"}, {"text": "Later"}],
    }


async def test_interactive_message_rejects_long_header(sender, provider):
    with pytest.raises(ValueError):
        await sender.send_interactive_buttons_message("+919876543210", "x" * 51, "body", ["Go"])
    assert provider.requests == []


async def test_interactive_message_rejects_long_button(sender, provider):
    with pytest.raises(ValueError):
        await sender.send_interactive_buttons_message("+919876543210", "Header", "body", ["b" * 21])
    assert provider.requests == []


async def test_provider_error_carries_status_and_payload(sender, provider):
    provider.failures["sendSessionMessage"] = 400

    with pytest.raises(NotificationDeliveryError) as exc_info:
        await sender.send_session_message("+919876543210", "Hello")

    assert exc_info.value.status_code == 400
    assert exc_info.value.payload == {"result": False, "info": "rejected by provider"}


async def test_transport_error_is_delivery_error():
    def unreachable(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(unreachable)) as client:
        sender = NotificationSender("https://wa.test", "key", client=client)
        with pytest.raises(NotificationDeliveryError) as exc_info:
            await sender.send_session_message("+919876543210", "Hello")

    assert exc_info.value.status_code is None


async def test_course_assignment_notification_uses_interactive_message(sender, provider):
    await sender.send_course_assignment_notification("Asha", "Python Basics", "+919876543210")

    body = json.loads(provider.interactive_messages[0].content)
    assert body["header"]["text"] == "Course Assigned!"
    assert "Python Basics" in body["body"]
    assert body["buttons"] == [{"text": "Let's MicroLearn"}]


async def test_course_suspension_notification_is_plain_message(sender, provider):
    await sender.send_course_suspension_notification("Asha", "Excel 101", "+919876543210")

    assert provider.interactive_messages == []
    text = json.loads(provider.session_messages[0].content)["messageText"]
    assert "Excel 101" in text
    assert "suspended" in text
