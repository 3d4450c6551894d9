import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    CHECKS_PATH: str = os.getenv("DYNAMICPROBE_CHECKS_PATH", "checks.yml")
    CHECK_TIMEOUT_S: float = float(os.getenv("CHECK_TIMEOUT_S", "30"))
    RUN_INTERVAL_S: int = int(os.getenv("RUN_INTERVAL_S", 60))
    SSH_DIAL_TIMEOUT_S: float = float(os.getenv("SSH_DIAL_TIMEOUT_S", "20"))
    HTTP_DEFAULT_TIMEOUT_S: float = float(
        os.getenv("HTTP_DEFAULT_TIMEOUT_S", "10")
    )
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "text")


settings = Settings()
