from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./tasktracker.db"
    sql_echo: bool = False
    create_tables: bool = True

    # Logging
    log_level: str = "INFO"
    log_file: str | None = None

    # Gunicorn
    bind: str = "0.0.0.0:8000"
    workers: int | None = None

    class Config:
        env_file = ".env"

settings = Settings()
