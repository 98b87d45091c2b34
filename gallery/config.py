import os
from typing import Optional

from pydantic_settings import BaseSettings
from botocore.exceptions import ClientError
import aioboto3
import structlog

logger = structlog.get_logger(__name__)

ONE_YEAR_SECONDS = 60 * 60 * 24 * 365


class Settings(BaseSettings):
    AWS_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: str = "test"
    AWS_SECRET_ACCESS_KEY: str = "test"
    AWS_ENDPOINT_URL: Optional[str] = None
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"
    ROOT_PATH: str = ""

    # These will be populated from SSM or defaults
    BUCKET_NAME: str = "gallery-images"
    TABLE_NAME: str = "gallery-kv-store"

    # All routes are served under /<SERVICE_ID>
    SERVICE_ID: str = "make-server-gallery"
    # Shared anonymous key expected as the bearer token on /images
    PUBLIC_KEY: str = "gallery-public-anon-key"
    SIGNED_URL_TTL_SECONDS: int = ONE_YEAR_SECONDS

    @property
    def aws_endpoint(self) -> Optional[str]:
        if self.AWS_ENDPOINT_URL:
            return self.AWS_ENDPOINT_URL
        localstack_host = os.environ.get("LOCALSTACK_HOSTNAME")
        if localstack_host:
            return f"http://{localstack_host}:4566"
        return None

    @property
    def aws_client_kwargs(self) -> dict:
        return {
            "region_name": self.AWS_REGION,
            "endpoint_url": self.aws_endpoint,
            "aws_access_key_id": self.AWS_ACCESS_KEY_ID,
            "aws_secret_access_key": self.AWS_SECRET_ACCESS_KEY,
        }

    @property
    def is_local(self) -> bool:
        return self.ENV in ("dev", "local")

    model_config = {
        "env_file": "dev.env",
        "extra": "ignore"
    }


class ClientSettings(BaseSettings):
    """Settings for the gallery client, read from GALLERY_* variables."""

    API_URL: str = "http://localhost:8000/make-server-gallery"
    PUBLIC_KEY: str = "gallery-public-anon-key"

    model_config = {
        "env_prefix": "GALLERY_",
        "env_file": "dev.env",
        "extra": "ignore"
    }


settings = Settings()


async def fetch_ssm_params():
    """
    Fetches bucket and table names from SSM Parameter Store.
    Updates the global settings object; keeps env/defaults on failure.
    """
    session = aioboto3.Session()
    logger.debug("ssm_connecting", endpoint=settings.aws_endpoint)
    try:
        async with session.client("ssm", **settings.aws_client_kwargs) as ssm:
            response = await ssm.get_parameters(
                Names=["/gallery/bucket_name", "/gallery/table_name"],
                WithDecryption=True
            )

            for param in response.get("Parameters", []):
                if param["Name"] == "/gallery/bucket_name":
                    settings.BUCKET_NAME = param["Value"]
                elif param["Name"] == "/gallery/table_name":
                    settings.TABLE_NAME = param["Value"]

            logger.info("ssm_config_loaded", bucket=settings.BUCKET_NAME, table=settings.TABLE_NAME)

    except ClientError as e:
        logger.warning("ssm_fetch_failed", error=str(e), bucket=settings.BUCKET_NAME, table=settings.TABLE_NAME)
