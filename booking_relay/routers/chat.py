from fastapi import APIRouter, BackgroundTasks, Depends

from booking_relay.dependencies import get_chat_service, get_identity
from booking_relay.logging_config import get_logger
from booking_relay.schemas.chat import ChatRequest, ChatResponse, ResetResponse
from booking_relay.services.chat_service import ChatService
from booking_relay.site_info import SiteInfo

logger = get_logger("routers.chat")

router = APIRouter()

MSG_INTERNAL_ERROR = (
    "Sorry, something went wrong on our side. You can still book a consultation "
    "via Email or Phone. Which would you prefer?"
)


@router.post("/api/chat", response_model=ChatResponse)
@router.post("/chat", response_model=ChatResponse, include_in_schema=False)
def chat(
    request: ChatRequest,
    background_tasks: BackgroundTasks,
    identity: str = Depends(get_identity),
    service: ChatService = Depends(get_chat_service),
):
    """Answer one widget message. Always 200; failures become a canned reply.

    The owner alert is sent after the response goes out.
    """
    try:
        reply = service.handle(request.message, identity, defer=background_tasks.add_task)
    except Exception:
        logger.exception("Chat handling failed", extra={"context": {"identity": identity}})
        reply = MSG_INTERNAL_ERROR
    return ChatResponse(reply=reply)


@router.post("/api/reset", response_model=ResetResponse)
def reset(service: ChatService = Depends(get_chat_service)):
    service.reset()
    return ResetResponse(reset=True)


@router.get("/api/siteinfo", response_model=SiteInfo)
def siteinfo(service: ChatService = Depends(get_chat_service)):
    return service.site
