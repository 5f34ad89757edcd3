from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from booking_relay.config import settings
from booking_relay.logging_config import get_logger, setup_logging
from booking_relay.routers import alerts, chat, widget
from booking_relay.services.chat_service import build_chat_service
from booking_relay.site_info import load_site_info

setup_logging(settings.log_level)
logger = get_logger("main")

app = FastAPI(
    title="Booking Relay",
    description="Consultation booking chat relay for the website widget",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat.router)
app.include_router(alerts.router)
app.include_router(widget.router)

app.state.settings = settings
app.state.chat_service = build_chat_service(settings, load_site_info(settings.site_info_path))

logger.info(
    "Booking relay configured",
    extra={
        "context": {
            "identity_strategy": settings.identity_strategy,
            "session_closing_enabled": settings.session_closing_enabled,
            "notify_store": settings.notify_store_path or "memory",
        }
    },
)


@app.get("/health")
async def health():
    return {"status": "ok"}
