from fastapi import APIRouter, Depends
from fastapi_utils.cbv import cbv

from core.safe_handler import safe_handler
from schemas.schema import FaqChatOut, FaqChatSchema
from services.faq_chat_service import FaqChatService

router = APIRouter(tags=["Platform FAQ Chat"])


def get_faq_chat_service() -> FaqChatService:
    return FaqChatService()


@cbv(router=router)
class FaqChatRoutes:
    @router.post("/chat", response_model=FaqChatOut)
    @safe_handler
    async def chat(
        self,
        data: FaqChatSchema,
        service: FaqChatService = Depends(get_faq_chat_service),
    ):
        return await service.send_message(data.messages)
