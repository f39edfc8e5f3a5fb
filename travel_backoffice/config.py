from pydantic_settings import BaseSettings
from typing import List, Optional

class Settings(BaseSettings):
    # Database
    DATABASE_URL: Optional[str] = None
    PGHOST: Optional[str] = None
    PGDATABASE: str = "travel_backoffice"
    PGUSER: str = "postgres"
    PGPASSWORD: str = ""
    PGSSLMODE: str = "prefer"
    SQLITE_PATH: str = "./travel_backoffice.db"
    
    # Application
    PROJECT_NAME: str = "Travel Agency Back Office"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]
    
    # Payments
    DEFAULT_CURRENCY: str = "CAD"
    UPCOMING_DUE_WINDOW_DAYS: int = 7
    
    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if self.PGHOST:
            return f"postgresql://{self.PGUSER}:{self.PGPASSWORD}@{self.PGHOST}/{self.PGDATABASE}?sslmode={self.PGSSLMODE}"
        return f"sqlite:///{self.SQLITE_PATH}"
    
    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
