"""
Configuration for the ElectroMart backend.

Settings are read from environment variables once at startup and frozen.
Each integration group knows whether it carries usable credentials; groups
that are missing or still hold the sample placeholder values disable their
integration instead of crashing the process.
"""
import logging
import os
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

FIREBASE_ENV_VARS = "FIREBASE_PROJECT_ID, FIREBASE_CLIENT_EMAIL and FIREBASE_PRIVATE_KEY"
CLOUDINARY_ENV_VARS = "CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY and CLOUDINARY_API_SECRET"
RAZORPAY_ENV_VARS = "RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET"

# Sample values shipped in .env.example
CLOUDINARY_PLACEHOLDERS = {
    "cloud_name": "your_cloud_name",
    "api_key": "123456789012345",
    "api_secret": "abcdefghijklmnopqrstuvwxyz123456",
}
RAZORPAY_PLACEHOLDER_KEY_ID = "rzp_test_abcdefghijklmnopqrstuvwxyz"
RAZORPAY_PLACEHOLDER_KEY_SECRET = "abcdefghijklmnopqrstuvwxyz1234567890abcd"


class FirebaseSettings(BaseModel):
    """Service account credentials for Firestore and Firebase Auth."""
    model_config = ConfigDict(frozen=True)

    project_id: str = ""
    client_email: str = ""
    private_key: str = ""

    @property
    def is_configured(self) -> bool:
        return (
            bool(self.project_id)
            and bool(self.client_email)
            and bool(self.private_key)
            and "your-project" not in self.client_email
            and "..." not in self.private_key
        )

    def certificate(self) -> dict:
        """Service account document accepted by firebase_admin.credentials.Certificate."""
        return {
            "type": "service_account",
            "project_id": self.project_id,
            "client_email": self.client_email,
            "private_key": self.private_key,
            "token_uri": "https://oauth2.googleapis.com/token",
        }


class CloudinarySettings(BaseModel):
    """Cloudinary account credentials."""
    model_config = ConfigDict(frozen=True)

    cloud_name: str = ""
    api_key: str = ""
    api_secret: str = ""

    @property
    def is_configured(self) -> bool:
        return (
            bool(self.cloud_name)
            and bool(self.api_key)
            and bool(self.api_secret)
            and self.cloud_name != CLOUDINARY_PLACEHOLDERS["cloud_name"]
            and self.api_key != CLOUDINARY_PLACEHOLDERS["api_key"]
            and self.api_secret != CLOUDINARY_PLACEHOLDERS["api_secret"]
        )

    def credentials(self) -> dict:
        return {
            "cloud_name": self.cloud_name,
            "api_key": self.api_key,
            "api_secret": self.api_secret,
        }


class RazorpaySettings(BaseModel):
    """Razorpay API key pair."""
    model_config = ConfigDict(frozen=True)

    key_id: str = ""
    key_secret: str = ""
    api_url: str = "https://api.razorpay.com/v1"

    @property
    def is_configured(self) -> bool:
        return (
            bool(self.key_id)
            and bool(self.key_secret)
            and "XXXXXXXX" not in self.key_id
            and "XXXXXXXX" not in self.key_secret
            and self.key_id != RAZORPAY_PLACEHOLDER_KEY_ID
            and self.key_secret != RAZORPAY_PLACEHOLDER_KEY_SECRET
        )


class ServerSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    port: int = 3000
    environment: str = "development"
    allowed_origins: List[str] = ["*"]
    admin_email_domain: str = "@electromart.com"
    log_level: str = ""

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


class Settings(BaseModel):
    """Immutable configuration for the whole process."""
    model_config = ConfigDict(frozen=True)

    firebase: FirebaseSettings = FirebaseSettings()
    cloudinary: CloudinarySettings = CloudinarySettings()
    razorpay: RazorpaySettings = RazorpaySettings()
    server: ServerSettings = ServerSettings()


def parse_origins(value: str) -> List[str]:
    """
    Split a comma separated origin list.

    Args:
        value: Raw ALLOWED_ORIGINS value

    Returns:
        List of origins, ["*"] if the value is empty
    """
    origins = [origin.strip() for origin in value.split(",") if origin.strip()]
    return origins or ["*"]


def load_environment(env_file: str = ".env") -> bool:
    """
    Load variables from a .env file into the process environment.

    Variables that are already set are left untouched.

    Args:
        env_file: Path to the file, relative to the working directory

    Returns:
        True if the file existed and was read
    """
    loaded = load_dotenv(env_file, override=False)
    if loaded:
        logger.info(f"Loaded environment from {env_file}")
    return loaded


def load_settings() -> Settings:
    """
    Build the settings value from the current environment.

    Returns:
        Frozen Settings instance
    """
    firebase = FirebaseSettings(
        project_id=os.getenv("FIREBASE_PROJECT_ID", ""),
        client_email=os.getenv("FIREBASE_CLIENT_EMAIL", ""),
        # Keys pasted into .env files carry literal "\n" sequences
        private_key=os.getenv("FIREBASE_PRIVATE_KEY", "").replace("\\n", "\n"),
    )
    cloudinary = CloudinarySettings(
        cloud_name=os.getenv("CLOUDINARY_CLOUD_NAME", ""),
        api_key=os.getenv("CLOUDINARY_API_KEY", ""),
        api_secret=os.getenv("CLOUDINARY_API_SECRET", ""),
    )
    razorpay = RazorpaySettings(
        key_id=os.getenv("RAZORPAY_KEY_ID", ""),
        key_secret=os.getenv("RAZORPAY_KEY_SECRET", ""),
        api_url=os.getenv("RAZORPAY_API_URL", "https://api.razorpay.com/v1"),
    )
    server = ServerSettings(
        port=int(os.getenv("PORT", "3000")),
        environment=os.getenv("NODE_ENV") or os.getenv("ENVIRONMENT", "development"),
        allowed_origins=parse_origins(os.getenv("ALLOWED_ORIGINS", "")),
        admin_email_domain=os.getenv("ADMIN_EMAIL_DOMAIN", "@electromart.com"),
        log_level=os.getenv("LOG_LEVEL", ""),
    )
    return Settings(firebase=firebase, cloudinary=cloudinary, razorpay=razorpay, server=server)
