from fastapi import APIRouter, HTTPException

from clinidash.models.chat import ChatRequest, ChatResponse
from clinidash.services.chat import reply
from clinidash.services.llm import GenerativeServiceFailure

router = APIRouter(prefix="/api/chat", tags=["chat"])


@router.post("", response_model=ChatResponse)
async def chat(body: ChatRequest):
    """Medical assistant chat. Needs a configured AI provider."""
    try:
        return ChatResponse(reply=await reply(body.message, body.history))
    except GenerativeServiceFailure as e:
        raise HTTPException(status_code=503, detail=f"AI assistant unavailable: {e}") from None
