"""
应用配置管理
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """应用配置"""

    # 应用配置
    APP_NAME: str = "FitTrack Pro"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # Supabase（远程存储 + 认证）
    SUPABASE_URL: str = "http://localhost:54321"
    SUPABASE_ANON_KEY: str = ""
    SUPABASE_TIMEOUT: float = 30.0

    # 本地时区（日期分桶使用，不是UTC）
    TZ: str = "UTC"

    # CORS
    FRONTEND_URL: str = "http://localhost:3000"

    # 静态页面目录（空字符串表示 backend/static）
    STATIC_DIR: str = ""

    # 仪表盘目标
    GOAL_STEPS: int = 10000
    GOAL_CALORIES: int = 3000
    GOAL_WATER: int = 2500  # ml

    HISTORY_DAYS: int = Field(7, ge=1)
    RECENT_ACTIVITIES_COUNT: int = 4

    # 重置失败后的补偿重试次数
    RESET_RETRY_ATTEMPTS: int = 1

    # 日志配置
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore"  # 忽略额外的环境变量
    )


settings = Settings()
