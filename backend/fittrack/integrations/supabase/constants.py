"""
Supabase常量定义
"""

# REST（PostgREST）与认证端点（相对SUPABASE_URL）
REST_PATH = "/rest/v1"
AUTH_USER_PATH = "/auth/v1/user"
AUTH_LOGOUT_PATH = "/auth/v1/logout"

# 表名
DAILY_STATS_TABLE = "daily_stats"
ACTIVITIES_TABLE = "activities"
MEALS_TABLE = "meals"

# 单行查询没有结果时 PostgREST 返回的错误码
NOT_FOUND_CODE = "PGRST116"

# 单行查询的 Accept 头
SINGLE_OBJECT_MEDIA_TYPE = "application/vnd.pgrst.object+json"
