"""Business logic / service layer for patient records.

PatientStore wraps the DynamoDB patients table and keeps the OpenSearch
index in step on create and delete. Every call is a single round trip with
no retry. The two writes of a create or delete are not atomic: if the
index write fails after the store write succeeded, the store keeps the
change and the error is reported to the caller.
"""
from typing import Any, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from patient_api.core.errors import DependencyError, NotFoundError, ValidationError
from patient_api.models.patient import UPDATABLE_FIELDS
from patient_api.services.logger import get_logger, log_debug
from patient_api.services.search_index import SearchIndex

logger = get_logger("patient_store")

DYNAMO_ERRORS = (BotoCoreError, ClientError)


def _is_conditional_failure(exc: Exception) -> bool:
    return (
        isinstance(exc, ClientError)
        and exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"
    )


class PatientStore:
    def __init__(self, table, search_index: SearchIndex, address_index: str = "Address-index"):
        self.table = table
        self.search_index = search_index
        self.address_index = address_index

    def get(self, patient_id: str) -> Optional[Dict[str, Any]]:
        logger.info("get has been called")
        try:
            response = self.table.get_item(Key={"PatientID": patient_id})
        except DYNAMO_ERRORS as exc:
            logger.exception("Error occurred while fetching the patient by id")
            raise DependencyError("Error occurred while fetching the patient by id") from exc
        return response.get("Item")

    def create(self, patient: Dict[str, Any]) -> Dict[str, Any]:
        logger.info("create has been called")
        try:
            self.table.put_item(Item=patient)
        except DYNAMO_ERRORS as exc:
            logger.exception("Error occurred while creating the patient")
            raise DependencyError("Error occurred while creating the patient") from exc

        # the record stays in DynamoDB even if this fails
        self.search_index.index(patient)
        return patient

    def update(self, patient_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        logger.info("update has been called")
        fields = [f for f in UPDATABLE_FIELDS if f in changes]
        if not fields:
            raise ValidationError(
                "Provide at least one of: " + ", ".join(UPDATABLE_FIELDS)
            )

        expression = "SET " + ", ".join(f"#{f.lower()} = :{f.lower()}" for f in fields)
        names = {f"#{f.lower()}": f for f in fields}
        values = {f":{f.lower()}": changes[f] for f in fields}
        log_debug("dynamo_update", {"PatientID": patient_id, "expression": expression})

        try:
            response = self.table.update_item(
                Key={"PatientID": patient_id},
                UpdateExpression=expression,
                ConditionExpression="attribute_exists(PatientID)",
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
                ReturnValues="ALL_NEW",
            )
        except DYNAMO_ERRORS as exc:
            if _is_conditional_failure(exc):
                raise NotFoundError("Patient not found") from exc
            logger.exception("Error occurred while updating the patient")
            raise DependencyError("Error occurred while updating the patient") from exc
        return response.get("Attributes")

    def delete(self, patient_id: str) -> Optional[Dict[str, Any]]:
        """Delete the record and its index document.

        Returns the deleted attributes, or None when nothing was stored under
        that id.
        """
        logger.info("delete has been called")
        try:
            response = self.table.delete_item(
                Key={"PatientID": patient_id},
                ReturnValues="ALL_OLD",
            )
        except DYNAMO_ERRORS as exc:
            logger.exception("Error occurred while deleting the patient")
            raise DependencyError("Error occurred while deleting the patient") from exc

        self.search_index.remove(patient_id)
        return response.get("Attributes")

    def query_by_address(self, address: str) -> List[Dict[str, Any]]:
        logger.info("query_by_address has been called")
        try:
            response = self.table.query(
                IndexName=self.address_index,
                KeyConditionExpression="Address = :address",
                ExpressionAttributeValues={":address": address},
            )
        except DYNAMO_ERRORS as exc:
            logger.exception("Error occurred while fetching the patient by address")
            raise DependencyError(
                "Error occurred while fetching the patient by address"
            ) from exc
        return response.get("Items", [])

    def scan_by_condition(self, condition: str) -> List[Dict[str, Any]]:
        # NOTE: full table scan, cost grows with the table
        logger.info("scan_by_condition has been called")
        try:
            response = self.table.scan(
                FilterExpression="contains(#conditions, :condition)",
                ExpressionAttributeNames={"#conditions": "Conditions"},
                ExpressionAttributeValues={":condition": condition},
            )
        except DYNAMO_ERRORS as exc:
            logger.exception("Error occurred while fetching the patient by condition")
            raise DependencyError(
                "Error occurred while fetching the patient by condition"
            ) from exc
        return response.get("Items", [])
