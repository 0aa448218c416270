from pydantic_settings import BaseSettings
from typing import Optional

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str

    # Security
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440
    TEACHER_TOKEN_EXPIRE_DAYS: int = 7

    # Environment
    ENVIRONMENT: str = "development"

    # Logging
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL

    # OTP login for teachers
    OTP_EXPIRE_MINUTES: int = 10
    OTP_BYPASS_ENABLED: Optional[bool] = None  # None -> enabled outside production
    EXPOSE_OTP_IN_RESPONSE: bool = False

    # AWS S3 Configuration (audio, images, evaluation metadata)
    AWS_S3_BUCKET: Optional[str] = None
    AWS_REGION: Optional[str] = None
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None

    # MSG91 SMS Configuration
    MSG91_AUTH_KEY: Optional[str] = None
    MSG91_TEMPLATE_ID: Optional[str] = None
    MSG91_SENDER_ID: str = "KANASU"
    MSG91_API_URL: str = "https://api.msg91.com/api/sendhttp.php"

    # Local scratch space for multipart uploads
    UPLOAD_DIR: str = "uploads"

    @property
    def otp_bypass(self) -> bool:
        """Whether OTP verification accepts any code (never on by default in production)."""
        if self.OTP_BYPASS_ENABLED is not None:
            return self.OTP_BYPASS_ENABLED
        return self.ENVIRONMENT != "production"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

settings = Settings()
