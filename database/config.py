"""
Supabase connection settings

Supabase 연결 설정
"""
from pydantic import Field
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()


class SupabaseConfig(BaseSettings):
    """Supabase 설정"""

    supabase_url: str = Field(default="", description="Supabase Project URL")
    supabase_key: str = Field(default="", description="Supabase service 또는 anon 키")

    class Config:
        env_prefix = ""
        case_sensitive = False


supabase_config = SupabaseConfig()
