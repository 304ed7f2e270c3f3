"""
khidmaty/config.py - Application configuration and Firebase initialization.

Settings are loaded from the environment (or a local `.env` file) through a
pydantic-settings class. The Firebase Admin SDK is initialised once at import
time and the Firestore client (`db`) and Storage bucket (`bucket`) are exposed
as module globals; routers and services import them from here.
"""
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore, storage
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    environment: str = Field("development", validation_alias="ENVIRONMENT")
    debug: bool = Field(False, validation_alias="DEBUG")
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")
    allowed_origins: str = Field("*", validation_alias="ALLOWED_ORIGINS")  # comma separated or '*'
    public_origin: str = Field("", validation_alias="PUBLIC_ORIGIN")

    firebase_cred_file: str = Field("firebase_service_account.json", validation_alias="FIREBASE_CRED_FILE")
    firebase_project_id: str = Field(..., validation_alias="FIREBASE_PROJECT_ID")
    firebase_storage_bucket: str = Field(..., validation_alias="FIREBASE_STORAGE_BUCKET")

    # Service account fields, used instead of the file when all are present (Cloud Run)
    firebase_private_key_id: Optional[str] = Field(None, validation_alias="FIREBASE_PRIVATE_KEY_ID")
    firebase_private_key: Optional[str] = Field(None, validation_alias="FIREBASE_PRIVATE_KEY")
    firebase_client_email: Optional[str] = Field(None, validation_alias="FIREBASE_CLIENT_EMAIL")
    firebase_client_id: Optional[str] = Field(None, validation_alias="FIREBASE_CLIENT_ID")
    firebase_token_uri: str = Field("https://oauth2.googleapis.com/token", validation_alias="FIREBASE_TOKEN_URI")

    expo_push_url: str = Field("https://exp.host/--/api/v2/push/send", validation_alias="EXPO_PUSH_URL")
    nominatim_base_url: str = Field("https://nominatim.openstreetmap.org", validation_alias="NOMINATIM_BASE_URL")
    nominatim_user_agent: str = Field(
        "KhidmatyConnect/1.0 (contact: support@khidmaty.ly)", validation_alias="NOMINATIM_USER_AGENT"
    )
    proxy_allowed_hosts: str = Field("api.github.com,dorar.net", validation_alias="PROXY_ALLOWED_HOSTS")
    http_timeout_seconds: float = Field(10.0, validation_alias="HTTP_TIMEOUT_SECONDS")

    cloudinary_cloud_name: str = Field("", validation_alias="CLOUDINARY_CLOUD_NAME")
    cloudinary_api_key: str = Field("", validation_alias="CLOUDINARY_API_KEY")
    cloudinary_api_secret: str = Field("", validation_alias="CLOUDINARY_API_SECRET")

    stats_cleanup_days: int = Field(90, validation_alias="STATS_CLEANUP_DAYS")
    scheduler_enabled: bool = Field(True, validation_alias="SCHEDULER_ENABLED")

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in ("production", "prod")

    @property
    def proxy_hosts(self) -> set[str]:
        return {h.strip().lower() for h in self.proxy_allowed_hosts.split(",") if h.strip()}


# Load settings from environment (.env file, etc.)
settings = Settings()

try:
    if all([
        settings.firebase_private_key_id,
        settings.firebase_private_key,
        settings.firebase_client_email,
        settings.firebase_client_id,
    ]):
        cred_dict = {
            "type": "service_account",
            "project_id": settings.firebase_project_id,
            "private_key_id": settings.firebase_private_key_id,
            # env files usually carry the key with escaped newlines
            "private_key": settings.firebase_private_key.replace("\\n", "\n"),
            "client_email": settings.firebase_client_email,
            "client_id": settings.firebase_client_id,
            "token_uri": settings.firebase_token_uri,
        }
        cred = credentials.Certificate(cred_dict)
    else:
        cred = credentials.Certificate(settings.firebase_cred_file)

    firebase_app = firebase_admin.initialize_app(cred, {
        "projectId": settings.firebase_project_id,
        "storageBucket": settings.firebase_storage_bucket,
    })
except ValueError as e:
    if "already exists" in str(e):
        firebase_app = firebase_admin.get_app()
    else:
        raise

db = firestore.client()  # Firestore database client
bucket = storage.bucket()  # Default storage bucket
