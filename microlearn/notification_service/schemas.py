from pydantic import BaseModel
from typing import Optional


class TestMessageRequest(BaseModel):
    phone: str
    message: Optional[str] = None


class TestMessageOut(BaseModel):
    phone: str
    detail: str
