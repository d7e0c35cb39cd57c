# patient_api/core/config.py
from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # HTTP listener
    HOST: str = "0.0.0.0"
    PORT: int = 3001

    # AWS region shared by DynamoDB, OpenSearch signing and Cognito
    AWS_REGION: str = ""

    # Cognito user pool issuing the access tokens
    AWS_USER_POOL_ID: str = ""
    AWS_POOL_CLIENT_ID: str = ""

    # Signing-key cache for the pool's jwks.json
    JWKS_CACHE_MAX_ENTRIES: int = 5
    JWKS_CACHE_MAX_AGE: int = 600
    JWKS_FETCH_TIMEOUT: float = 5.0

    # DynamoDB
    DYNAMODB_TABLE_NAME: str = "Patients"
    DYNAMODB_ADDRESS_INDEX: str = "Address-index"

    # OpenSearch
    OPENSEARCH_DOMAIN: str = ""
    OPENSEARCH_INDEX_NAME: str = "patients"
    OPENSEARCH_SERVICE: str = "es"

    LOG_LEVEL: str = "INFO"
    PATIENT_API_DEBUG: bool = False

    # .env may also carry AWS credentials for boto3, which are not settings here
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @property
    def token_issuer(self) -> str:
        return f"https://cognito-idp.{self.AWS_REGION}.amazonaws.com/{self.AWS_USER_POOL_ID}"

    @property
    def jwks_url(self) -> str:
        return f"{self.token_issuer}/.well-known/jwks.json"


settings = Settings()
