"""
Chat endpoints: /chat/*
"""

from vibing.api.client import ApiClient
from vibing.models.api import (
    ChatMessage,
    ConversationsResponse,
    CreateConversationRequest,
    CreatedConversation,
    MessagesResponse,
)


class ChatApi:
    def __init__(self, client: ApiClient) -> None:
        self.client = client

    async def conversations(self, page: int = 1, limit: int = 20) -> ConversationsResponse:
        body = await self.client.get("/chat/conversations", params={"page": page, "limit": limit})
        return ConversationsResponse.model_validate(body or {})

    async def create_conversation(self, request: CreateConversationRequest) -> CreatedConversation:
        body = await self.client.post("/chat/conversations", request.to_payload())
        return CreatedConversation.model_validate(body["conversation"])

    async def messages(
        self, conversation_id: str, page: int = 1, limit: int = 50
    ) -> MessagesResponse:
        body = await self.client.get(
            f"/chat/conversations/{conversation_id}/messages",
            params={"page": page, "limit": limit},
        )
        return MessagesResponse.model_validate(body or {})

    async def send_message(self, conversation_id: str, text: str) -> ChatMessage:
        body = await self.client.post(
            f"/chat/conversations/{conversation_id}/messages", {"text": text}
        )
        return ChatMessage.model_validate(body["message"])

    async def send_image(self, conversation_id: str, image_url: str) -> ChatMessage:
        body = await self.client.post(
            f"/chat/conversations/{conversation_id}/images", {"imageUrl": image_url}
        )
        return ChatMessage.model_validate(body["message"])

    async def mark_as_read(self, conversation_id: str) -> None:
        await self.client.put(f"/chat/conversations/{conversation_id}/read")

    async def delete_conversation(self, conversation_id: str) -> None:
        await self.client.delete(f"/chat/conversations/{conversation_id}")
