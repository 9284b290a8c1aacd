import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

@dataclass
class Settings:
    # Application settings
    app_name: str = os.getenv("APP_NAME", "Lending Library")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "False").lower() in ("true", "1", "yes")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # API settings
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "8000"))

    # Return history storage
    history_file: str = os.getenv("LIBRARY_HISTORY_FILE", os.path.join("data", "history.json"))

    # Lending rules
    borrowing_limit: int = int(os.getenv("BORROWING_LIMIT", "3"))
    default_loan_days: int = int(os.getenv("DEFAULT_LOAN_DAYS", "7"))
    overdue_fine: int = int(os.getenv("OVERDUE_FINE", "100"))


settings = Settings()
