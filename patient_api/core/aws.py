"""
AWS client construction.

The API keeps patient records in a DynamoDB table and mirrors them into an
OpenSearch index for free-text search. Both clients are long-lived and
built once at app startup; handlers receive them through dependencies
instead of importing module globals.

Credentials come from the standard boto3 chain (environment variables,
shared profile, or instance role).
"""

import boto3
from opensearchpy import AWSV4SignerAuth, OpenSearch, RequestsHttpConnection

from patient_api.core.config import Settings
from patient_api.services.logger import get_logger

logger = get_logger("aws")


def init_dynamo_table(settings: Settings):
    """Return the boto3 Table resource for the patients table."""
    dynamodb = boto3.resource("dynamodb", region_name=settings.AWS_REGION or None)
    table = dynamodb.Table(settings.DYNAMODB_TABLE_NAME)
    logger.info("DynamoDB table %s initialized", settings.DYNAMODB_TABLE_NAME)
    return table


def init_opensearch(settings: Settings) -> OpenSearch:
    """Return an OpenSearch client signing requests with SigV4."""
    if not settings.OPENSEARCH_DOMAIN:
        raise RuntimeError(
            "OpenSearch endpoint not configured.\n"
            "Set OPENSEARCH_DOMAIN to the domain endpoint URL."
        )

    credentials = boto3.Session().get_credentials()
    if credentials is None:
        raise RuntimeError("No AWS credentials found for OpenSearch request signing.")

    auth = AWSV4SignerAuth(credentials, settings.AWS_REGION, settings.OPENSEARCH_SERVICE)
    client = OpenSearch(
        hosts=[settings.OPENSEARCH_DOMAIN],
        http_auth=auth,
        use_ssl=settings.OPENSEARCH_DOMAIN.startswith("https"),
        verify_certs=True,
        connection_class=RequestsHttpConnection,
    )
    logger.info("OpenSearch client initialized for %s", settings.OPENSEARCH_DOMAIN)
    return client
