import uvicorn

from booking_relay.config import settings

if __name__ == "__main__":
    uvicorn.run("booking_relay.main:app", host=settings.host, port=settings.port)
