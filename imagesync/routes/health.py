from typing import Literal

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
from typing_extensions import TypedDict

router = APIRouter(tags=["Health"])


class HealthResponse(TypedDict):
    status: Literal["pass"]


@router.get("/ping", response_class=PlainTextResponse)
async def ping():
    return "pong"


@router.get("/health", responses={200: {"model": HealthResponse}})
async def health():
    return {"status": "pass"}
