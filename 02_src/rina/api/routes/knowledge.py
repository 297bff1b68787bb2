"""Knowledge API routes."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field
from fastapi import APIRouter, HTTPException, Query

from ...app import IApplication
from ...errors import RinaError
from ...models import ChannelType, Document, Source


class MessageRecord(BaseModel):
    """Response model for a stored message."""

    id: str
    source: Source
    source_id: str
    channel_type: ChannelType
    channel_id: str
    account_id: str
    role: str
    content: str
    created_at: datetime


class DocumentIn(BaseModel):
    """A document to add to the knowledge store."""

    id: str = Field(min_length=1)
    source_id: str
    content: str


class DocumentsRequest(BaseModel):
    """Request model for adding documents."""

    documents: list[DocumentIn]


class DocumentsResponse(BaseModel):
    """Response model for adding documents."""

    added: int


class SearchHit(BaseModel):
    """Response model for a nearest-neighbour hit."""

    id: str
    content: str
    score: float


def create_knowledge_router(app: IApplication) -> APIRouter:
    """Create knowledge router."""
    router = APIRouter(prefix="/api", tags=["knowledge"])

    @router.get("/channels/{channel_id}/messages", response_model=list[MessageRecord])
    async def get_channel_messages(
        channel_id: str,
        limit: int = Query(10, ge=1, le=1000),
    ) -> list[dict]:
        """Get the most recent messages of a channel, newest first."""
        try:
            messages = await app.knowledge.get_recent_messages(channel_id, limit)
        except RinaError as e:
            raise HTTPException(status_code=500, detail=str(e))

        return [
            {
                "id": m.id,
                "source": m.source,
                "source_id": m.source_id,
                "channel_type": m.channel_type,
                "channel_id": m.channel_id,
                "account_id": m.account_id,
                "role": m.role,
                "content": m.content,
                "created_at": m.created_at,
            }
            for m in messages
        ]

    @router.post("/documents", response_model=DocumentsResponse)
    async def add_documents(request: DocumentsRequest) -> dict:
        """Embed and store a batch of documents."""
        documents = [
            Document(id=d.id, source_id=d.source_id, content=d.content)
            for d in request.documents
        ]
        try:
            await app.knowledge.add_documents(documents)
        except RinaError as e:
            raise HTTPException(status_code=500, detail=str(e))
        return {"added": len(documents)}

    @router.get("/search", response_model=list[SearchHit])
    async def search(
        q: str = Query(..., min_length=1),
        n: int = Query(2, ge=1, le=50),
        index: Literal["messages", "documents"] = Query("documents"),
    ) -> list[dict]:
        """Nearest-neighbour search over messages or documents."""
        vector_index = (
            app.knowledge.message_index()
            if index == "messages"
            else app.knowledge.document_index()
        )
        try:
            results = await vector_index.top_n(q, n)
        except RinaError as e:
            raise HTTPException(status_code=500, detail=str(e))

        return [{"id": r.id, "content": r.content, "score": r.score} for r in results]

    return router
