from pydantic import BaseModel


class SubscriptionRequest(BaseModel):
    email: str
    website: str = ""


class SubscribeResponse(BaseModel):
    success: bool = True
    message: str
