"""OpenSearch mirror of the patients table.

Documents are indexed under their PatientID so store and index share ids.
Only create and delete keep the index in step with the store; updates are
written to DynamoDB alone.
"""
from typing import Any, Dict, List

from opensearchpy import NotFoundError as DocumentNotFound
from opensearchpy import OpenSearchException

from patient_api.core.errors import DependencyError
from patient_api.services.logger import get_logger, log_debug

logger = get_logger("search_index")


class SearchIndex:
    def __init__(self, client, index_name: str = "patients"):
        self.client = client
        self.index_name = index_name

    def index(self, patient: Dict[str, Any]) -> None:
        logger.info("index has been called")
        try:
            self.client.index(
                index=self.index_name,
                id=patient["PatientID"],
                body=patient,
            )
        except OpenSearchException as exc:
            logger.exception("Error occurred while indexing the patient in opensearch")
            raise DependencyError(
                "Error occurred while indexing the patient in opensearch"
            ) from exc

    def remove(self, patient_id: str) -> None:
        logger.info("remove has been called")
        try:
            self.client.delete(index=self.index_name, id=patient_id)
        except DocumentNotFound:
            logger.info("Patient %s was not in OpenSearch, nothing to remove", patient_id)
            return
        except OpenSearchException as exc:
            logger.exception("Error occurred while removing patient from OpenSearch")
            raise DependencyError("Failed to remove patient from OpenSearch") from exc
        logger.info("Patient removed from OpenSearch")

    def search_by_condition(self, condition: str) -> List[Dict[str, Any]]:
        logger.info("search_by_condition has been called")
        return self._match("Conditions", condition, "condition")

    def search_by_address(self, address: str) -> List[Dict[str, Any]]:
        logger.info("search_by_address has been called")
        return self._match("Address", address, "address")

    def _match(self, field: str, text: str, label: str) -> List[Dict[str, Any]]:
        query = {"query": {"match": {field: text}}}
        log_debug("opensearch_query", {"index": self.index_name, "body": query})
        try:
            result = self.client.search(index=self.index_name, body=query)
        except OpenSearchException as exc:
            logger.exception("Error occurred while searching patient by %s", label)
            raise DependencyError(
                f"Error occurred while searching patient by {label} from OpenSearch"
            ) from exc
        return result["hits"]["hits"]
