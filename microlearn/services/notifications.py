import logging
from typing import List, Optional

import httpx

from microlearn.exceptions import NotificationDeliveryError

logger = logging.getLogger("notifications")

MAX_HEADER_LENGTH = 50
MAX_BUTTON_LENGTH = 20

ASSIGNMENT_HEADER = "Course Assigned!"
ASSIGNMENT_BUTTON = "Let's MicroLearn"


class NotificationSender:
    """
    Client for the WhatsApp provider's session and interactive message endpoints.

    The endpoint and API key are given explicitly. Pass ``client`` to reuse an
    ``httpx.AsyncClient`` (tests pass one built on a mock transport); otherwise
    a short-lived client is opened per message. Failed sends are never retried.
    """

    def __init__(self, base_url: str, api_key: str, client: Optional[httpx.AsyncClient] = None,
                 timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.client = client
        self.timeout = timeout

    def _headers(self):
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _post(self, url: str, payload: dict, params: Optional[dict] = None) -> httpx.Response:
        try:
            if self.client is not None:
                resp = await self.client.post(url, json=payload, params=params, headers=self._headers())
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.post(url, json=payload, params=params, headers=self._headers())
        except httpx.RequestError as e:
            logger.error(f"WhatsApp provider unreachable: {e}")
            raise NotificationDeliveryError(f"Messaging provider unreachable: {e}") from e

        if not resp.is_success:
            try:
                error_payload = resp.json()
            except ValueError:
                error_payload = resp.text
            logger.error(f"WhatsApp provider rejected message: {resp.status_code} {error_payload}")
            raise NotificationDeliveryError(
                f"Messaging provider returned {resp.status_code}",
                status_code=resp.status_code,
                payload=error_payload,
            )
        return resp

    @staticmethod
    def _wa_number(phone: str) -> str:
        # provider addresses numbers without the leading '+'
        return phone.lstrip("+")

    async def send_session_message(self, phone: str, text: str) -> None:
        url = f"{self.base_url}/api/v1/sendSessionMessage/{self._wa_number(phone)}"
        await self._post(url, {"messageText": text})
        logger.info(f"Session message sent to {phone}")

    async def send_interactive_buttons_message(self, phone: str, header: str, body: str,
                                               buttons: List[str]) -> None:
        if len(header) > MAX_HEADER_LENGTH:
            raise ValueError(f"Header exceeds {MAX_HEADER_LENGTH} characters: {header!r}")
        for label in buttons:
            if len(label) > MAX_BUTTON_LENGTH:
                raise ValueError(f"Button label exceeds {MAX_BUTTON_LENGTH} characters: {label!r}")

        url = f"{self.base_url}/api/v1/sendInteractiveButtonsMessage"
        payload = {
            "header": {"type": "Text", "text": header},
            "body": body,
            "buttons": [{"text": label} for label in buttons],
        }
        await self._post(url, payload, params={"whatsappNumber": self._wa_number(phone)})
        logger.info(f"Interactive message sent to {phone}")

    async def send_course_assignment_notification(self, learner_name: str, course_name: str,
                                                  phone: str) -> None:
        body = (
            f"Hi {learner_name}, {course_name} course is assigned to you. "
            f"Press {ASSIGNMENT_BUTTON} to start learning."
        )
        await self.send_interactive_buttons_message(phone, ASSIGNMENT_HEADER, body, [ASSIGNMENT_BUTTON])

    async def send_course_suspension_notification(self, learner_name: str, course_name: str,
                                                  phone: str) -> None:
        text = (
            f"Hi {learner_name}, your course {course_name} has been suspended "
            f"because a new course was assigned to you."
        )
        await self.send_session_message(phone, text)

    async def send_welcome_message(self, learner_name: str, phone: str) -> None:
        text = f"Hello {learner_name or 'there'}! You have been successfully registered for MicroLearn training."
        await self.send_session_message(phone, text)
