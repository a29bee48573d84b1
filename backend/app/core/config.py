from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # Database - можно указать либо DATABASE_URL, либо компоненты
    DATABASE_URL: str = ""  # Если указан, будет использован напрямую
    POSTGRES_USER: str = "jobportal"
    POSTGRES_PASSWORD: str = "jobportal"
    POSTGRES_DB: str = "jobportal"
    POSTGRES_HOST: str = "postgres"
    POSTGRES_PORT: int = 5432

    def get_database_url(self) -> str:
        """Получает DATABASE_URL - либо из переменной, либо формирует из компонентов"""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # JWT
    SECRET_KEY: str = "jobportal-secret-key-change-in-production"
    REFRESH_SECRET_KEY: str = "jobportal-refresh-secret-key-change-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7

    # Redis (блэклист токенов, refresh токены, уведомления)
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""
    NOTIFICATION_CHANNEL_PREFIX: str = "notifications"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:8000"

    @property
    def CORS_ORIGINS_LIST(self) -> List[str]:
        """Преобразует строку CORS_ORIGINS в список"""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    # Заявки
    BULK_STATUS_LIMIT: int = 50  # Лишние id в bulk-запросе молча отбрасываются

    # Ограничение попыток регистрации и входа с одного адреса
    AUTH_RATE_LIMIT_ATTEMPTS: int = 5
    AUTH_RATE_LIMIT_WINDOW_SECONDS: int = 3600

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        # Позволяем переопределить через переменные окружения
        extra = "allow"


settings = Settings()
