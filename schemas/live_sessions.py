from pydantic import BaseModel
from typing import Optional


class LiveSessionRequest(BaseModel):
    # Optional here so a missing value is answered with 400 rather than 422
    userurl: Optional[str] = None


class LiveSession(BaseModel):
    id: int
    userurl: str
    createdAt: str
    updatedAt: str


class LiveSessionResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: LiveSession


class LiveSessionListResponse(BaseModel):
    success: bool = True
    count: int
    data: list[LiveSession]
