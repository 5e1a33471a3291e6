from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

from dotenv import load_dotenv

load_dotenv()



class Settings(BaseSettings):
    upstream_url: str = "https://api2.cursor.sh/aiserver.v1.AiService/StreamChat"
    upstream_timeout: float = 300.0
    client_version: str = "0.42.3"
    client_timezone: str = "Asia/Shanghai"
    user_agent: str = "connect-es/1.4.0"
    cursor_checksum: str | None = None    # random per call when unset
    instruction: str = "Always respond in 中文"
    project_path: str = "/path/to/project"
    stream_unsupported_prefix: str = "o1-"
    cors_origins: List[str] = ["*"]
    log_level: str = "INFO"
    port: int = 3000

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
