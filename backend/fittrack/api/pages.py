"""
页面路由 - 返回静态HTML
"""
import logging
from pathlib import Path

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import FileResponse

from fittrack.config import settings

logger = logging.getLogger(__name__)

router = APIRouter()

# 路由 -> HTML文件
PAGES = {
    "/": "landing.html",
    "/dashboard": "app.html",
    "/login": "login.html",
    "/profile": "profile.html",
    "/activity": "activity.html",
    "/meals": "meals.html",
    "/insights": "insights.html",
}


def get_static_dir() -> Path:
    """静态文件目录（默认 backend/static）"""
    if settings.STATIC_DIR:
        return Path(settings.STATIC_DIR)
    return Path(__file__).resolve().parent.parent.parent / "static"


def _page_endpoint(filename: str):
    async def serve_page():
        path = get_static_dir() / filename
        if not path.is_file():
            logger.warning(f"页面不存在: {path}")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{filename} not found")
        return FileResponse(path)

    serve_page.__name__ = f"page_{Path(filename).stem}"
    return serve_page


for _route, _filename in PAGES.items():
    router.add_api_route(_route, _page_endpoint(_filename), methods=["GET"], include_in_schema=False)
