from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = "sqlite:///afriroots.db"
    api_title: str = "AfriRoots API"
    access_token_expire_minutes: int = 60
    jwt_secret: str = "secret"
    jwt_algorithm: str = "HS256"
    bcrypt_rounds: int = 12
    min_password_length: int = 6


settings = Settings()
