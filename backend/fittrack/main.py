"""
FastAPI主应用 - 静态页面 + 健康检查

所有业务数据由浏览器直接读写Supabase，本服务不提供其他接口。
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from fittrack.config import settings
from fittrack.api import health, pages

# 配置日志
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    logger.info(f"🚀 {settings.APP_NAME} v{settings.APP_VERSION} 启动中...")
    logger.info(f"✅ Server running on http://localhost:{settings.PORT}")
    yield
    logger.info(f"👋 {settings.APP_NAME} 关闭中...")


# 创建FastAPI应用
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="个人健身追踪 - 步数、卡路里、饮水、运动和餐食",
    lifespan=lifespan,
    debug=settings.DEBUG,
)

# 配置CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL] if not settings.DEBUG else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册路由
app.include_router(health.router, prefix="/api", tags=["健康检查"])
app.include_router(pages.router, tags=["页面"])

# 挂载静态资源（CSS、JS、图片）
static_dir = pages.get_static_dir()
if static_dir.exists():
    app.mount("/", StaticFiles(directory=str(static_dir)), name="static")
else:
    logger.warning(f"静态目录不存在: {static_dir}")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "fittrack.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
