"""
Supabase集成模块
"""
from fittrack.integrations.supabase.client import SupabaseClient, SupabaseAuth

__all__ = ["SupabaseClient", "SupabaseAuth"]
