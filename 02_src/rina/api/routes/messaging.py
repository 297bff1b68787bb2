"""Messaging API routes (direct transport)."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field
from fastapi import APIRouter, HTTPException

from ...app import IApplication
from ...errors import RinaError
from ...models import AttentionCommand, ChannelType, Message, Source


class MessageRequest(BaseModel):
    """Canonical inbound message plus transport-extracted mentions."""

    id: str = Field(min_length=1)
    source: Source
    source_id: str
    channel_type: ChannelType
    channel_id: str = Field(min_length=1)
    account_id: str | None = None
    role: str = "user"
    content: str
    created_at: datetime | None = None
    mentioned_names: list[str] = Field(default_factory=list)
    author_name: str | None = None


class MessageResponse(BaseModel):
    """Response model for a handled message."""

    command: AttentionCommand
    reply: str | None = None


class EngagementRequest(BaseModel):
    """Request model for engagement gates."""

    content: str


class EngagementResponse(BaseModel):
    """Response model for engagement gates."""

    like: bool
    retweet: bool
    quote: bool


def create_messaging_router(app: IApplication) -> APIRouter:
    """Create messaging router."""
    router = APIRouter(prefix="/api", tags=["messaging"])

    @router.post("/messages", response_model=MessageResponse)
    async def send_message(request: MessageRequest) -> dict:
        """Record a message and return the attention decision and reply."""
        message = Message(
            id=request.id,
            source=request.source,
            source_id=request.source_id,
            channel_type=request.channel_type,
            channel_id=request.channel_id,
            account_id=request.account_id or request.source_id,
            role=request.role,
            content=request.content,
            created_at=request.created_at or datetime.now(timezone.utc),
        )
        try:
            result = await app.handler.handle(
                message,
                mentioned_names=request.mentioned_names,
                author_name=request.author_name,
            )
        except RinaError as e:
            raise HTTPException(status_code=500, detail=str(e))
        return {"command": result.command, "reply": result.reply}

    @router.post("/engagement", response_model=EngagementResponse)
    async def engagement(request: EngagementRequest) -> dict:
        """Decide like / retweet / quote for a post."""
        decision = await app.handler.engage(request.content)
        return {
            "like": decision.like,
            "retweet": decision.retweet,
            "quote": decision.quote,
        }

    return router
