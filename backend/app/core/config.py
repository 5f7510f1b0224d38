from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Application
    app_name: str = "Petualang Belajar API"
    debug: bool = False

    # Supabase
    supabase_url: str
    supabase_service_key: str

    # Auth (HS256 tokens for peserta didik and guru)
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24 * 7

    # Printed report (laporan) letterhead
    report_city: str = "Palangka Raya"
    report_government: str = "PEMERINTAH KOTA PALANGKA RAYA"
    report_subject: str = "IPAS"

    # CORS
    frontend_url: str = "http://localhost:5173"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    return Settings()
