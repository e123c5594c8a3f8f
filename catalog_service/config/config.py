from pathlib import Path
from typing import Optional

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClerkConfig(BaseModel):
    """Clerk config needed to verify session tokens and load users"""

    secret_key: str
    jwt_key: str
    api_url: str = "https://api.clerk.com/v1"
    algorithm: str = "RS256"


class MinioConfig(BaseModel):
    """Object storage connection details"""

    endpoint: str
    access_key: str
    secret_key: str
    secure: bool = False
    bucket_name: str = "catalog-media"
    public_url: Optional[str] = None


class Config(BaseSettings):
    """Config settings"""

    ENV: str = "development"

    # Postgres
    POSTGRES_HOST: str = "localhost"
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "catalog"
    DATABASE_URL: Optional[str] = None
    DB_ECHO: bool = False
    AUTO_CREATE_TABLES: bool = True

    # Clerk
    CLERK_SECRET_KEY: str = ""
    CLERK_JWT_KEY: str = ""
    CLERK_API_URL: str = "https://api.clerk.com/v1"

    # Minio
    MINIO_ENDPOINT: str = "localhost:9000"
    MINIO_ACCESS_KEY: str = "minioadmin"
    MINIO_SECRET_KEY: str = "minioadmin"
    MINIO_SECURE: bool = False
    MINIO_BUCKET_NAME: str = "catalog-media"
    MINIO_PUBLIC_URL: Optional[str] = None

    # HTTP
    CLIENT_URL: str = "http://localhost:3000"
    MAX_UPLOAD_FILES: int = 4

    @property
    def database_url(self) -> str:
        """Method to return Database url"""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}/{self.POSTGRES_DB}"

    @property
    def clerk_config(self) -> ClerkConfig:
        """Method to return Clerk Config"""
        return ClerkConfig(
            secret_key=self.CLERK_SECRET_KEY,
            jwt_key=self.CLERK_JWT_KEY,
            api_url=self.CLERK_API_URL,
        )

    @property
    def minio_config(self) -> MinioConfig:
        """Method to return Minio Config"""
        return MinioConfig(
            endpoint=self.MINIO_ENDPOINT,
            access_key=self.MINIO_ACCESS_KEY,
            secret_key=self.MINIO_SECRET_KEY,
            secure=self.MINIO_SECURE,
            bucket_name=self.MINIO_BUCKET_NAME,
            public_url=self.MINIO_PUBLIC_URL,
        )

    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parent.parent.parent / ".env.catalog",
        env_file_encoding="utf-8",
        extra="ignore",
    )


config = Config()
