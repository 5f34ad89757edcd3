from pathlib import Path

from fastapi import APIRouter
from fastapi.responses import FileResponse

STATIC_DIR = Path(__file__).resolve().parent.parent / "static"

router = APIRouter()


@router.get("/", include_in_schema=False)
def widget_page():
    return FileResponse(STATIC_DIR / "widget.html", media_type="text/html")


@router.get("/widget.js", include_in_schema=False)
def widget_loader():
    return FileResponse(STATIC_DIR / "widget.js", media_type="application/javascript")
