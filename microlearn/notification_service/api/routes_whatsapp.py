from fastapi import APIRouter, Depends, HTTPException
import logging

from .. import schemas
from microlearn import config
from microlearn.dependencies import get_notification_sender
from microlearn.exceptions import InvalidPhoneNumber, NotificationDeliveryError
from microlearn.services.notifications import NotificationSender
from microlearn.services.phone import normalize_phone_number

router = APIRouter(tags=["WhatsApp"])

logger = logging.getLogger("notification_service")

TEST_MESSAGE = (
    "This is a test message from MicroLearn. If you received this, "
    "your WhatsApp integration is working correctly."
)


@router.post("/test", response_model=schemas.TestMessageOut)
async def send_test_message(data: schemas.TestMessageRequest, sender: NotificationSender = Depends(get_notification_sender)):
    try:
        phone = normalize_phone_number(data.phone, config.PHONE_COUNTRY_CODE)
    except InvalidPhoneNumber as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        await sender.send_session_message(phone, data.message or TEST_MESSAGE)
    except NotificationDeliveryError as e:
        logger.warning(f"Test message to {phone} failed: {e}")
        raise HTTPException(status_code=502, detail={"message": str(e), "provider_response": e.payload})

    return {"phone": phone, "detail": "Test message sent"}
