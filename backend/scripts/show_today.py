"""查看今天的统计和最近7天历史

使用方法:
    FITTRACK_ACCESS_TOKEN=your-access-token python scripts/show_today.py
"""
import asyncio
import sys
import os

# 添加项目根目录到路径
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fittrack.store.session import open_data_manager
from fittrack.services.dashboard import build_dashboard, build_insights

# 从环境变量读取access token
ACCESS_TOKEN = os.environ.get("FITTRACK_ACCESS_TOKEN", "")


async def show_today():
    if not ACCESS_TOKEN:
        print("错误: 请设置 FITTRACK_ACCESS_TOKEN 环境变量")
        print("使用方法: FITTRACK_ACCESS_TOKEN=your-access-token python scripts/show_today.py")
        sys.exit(1)

    async with open_data_manager(ACCESS_TOKEN) as manager:
        if manager.user is None:
            print("错误: access token 无效或已过期")
            sys.exit(1)

        print("="*60)
        print(f"1. 今日统计 ({manager.get_local_date()})")
        print("="*60)
        dashboard = await build_dashboard(manager)
        if not dashboard.success:
            print(f"获取失败: {dashboard.error.kind.value} {dashboard.error.message}")
            sys.exit(1)
        summary = dashboard.data
        print(f"步数:   {summary.steps.value} / {summary.steps.goal} ({summary.steps.percent}%)")
        print(f"卡路里: {summary.calories.value} / {summary.calories.goal} ({summary.calories.percent}%)")
        print(f"饮水:   {summary.water.value}ml / {summary.water.goal}ml ({summary.water.percent}%)")

        print("\n" + "="*60)
        print("2. 最近7天")
        print("="*60)
        insights = await build_insights(manager)
        if not insights.success:
            print(f"获取失败: {insights.error.kind.value} {insights.error.message}")
            sys.exit(1)
        for label, steps, calories in zip(insights.data.labels, insights.data.steps, insights.data.calories):
            print(f"{label}  步数 {steps:>6}  卡路里 {calories:>5}")

        print("\n✅ 完成！")

if __name__ == "__main__":
    asyncio.run(show_today())
