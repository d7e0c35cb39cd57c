"""Patient-related API routes.

Every route requires a valid Cognito access token. Responses share one
envelope: ``{"statusCode": ..., "data": ..., "description": ...}``.
"""
from uuid import uuid4

from fastapi import APIRouter, Depends, Query
from fastapi.concurrency import run_in_threadpool

from patient_api.api.deps import get_current_user, get_patient_store, get_search_index
from patient_api.models.patient import ApiResponse, Patient, PatientCreate, PatientUpdate
from patient_api.services.logger import get_logger
from patient_api.services.patient_store import PatientStore
from patient_api.services.search_index import SearchIndex

logger = get_logger("routes.patients")

router = APIRouter(
    prefix="/patients",
    tags=["patients"],
    dependencies=[Depends(get_current_user)],
)


@router.post("", status_code=201, response_model=ApiResponse)
async def create_patient(
    payload: PatientCreate,
    store: PatientStore = Depends(get_patient_store),
):
    """Mint a PatientID, store the record and index it."""
    logger.info("create patient route has been called")
    patient = Patient(PatientID=str(uuid4()), **payload.model_dump()).model_dump()
    result = await run_in_threadpool(store.create, patient)
    logger.info("patient has been created successfully")
    return ApiResponse(
        statusCode="CREATED_SUCCESSFULLY",
        data=result,
        description="Patient created successfully",
    )


@router.patch("/{patient_id}", response_model=ApiResponse)
async def update_patient(
    patient_id: str,
    payload: PatientUpdate,
    store: PatientStore = Depends(get_patient_store),
):
    """Overwrite the supplied fields. The search index is not refreshed."""
    logger.info("update patient route has been called")
    result = await run_in_threadpool(store.update, patient_id, payload.changes())
    logger.info("patient has been updated successfully")
    return ApiResponse(
        statusCode="UPDATED_SUCCESSFULLY",
        data=result,
        description="Patient updated successfully",
    )


@router.delete("/{patient_id}", response_model=ApiResponse)
async def delete_patient(
    patient_id: str,
    store: PatientStore = Depends(get_patient_store),
):
    logger.info("delete patient route has been called")
    result = await run_in_threadpool(store.delete, patient_id)
    logger.info("patient has been deleted successfully")
    return ApiResponse(
        statusCode="DELETED_SUCCESSFULLY",
        data=result,
        description="Patient deleted successfully",
    )


@router.get("/search/condition", response_model=ApiResponse)
async def search_by_condition(
    condition: str = Query(...),
    search_index: SearchIndex = Depends(get_search_index),
):
    """Full-text search on Conditions in OpenSearch."""
    logger.info("Search patients by their physical condition route has been called")
    result = await run_in_threadpool(search_index.search_by_condition, condition)
    return ApiResponse(
        statusCode="SEARCHED_SUCCESSFULLY",
        data=result,
        description="Patient searched successfully",
    )


@router.get("/search/address", response_model=ApiResponse)
async def search_by_address(
    address: str = Query(...),
    search_index: SearchIndex = Depends(get_search_index),
):
    """Full-text search on Address in OpenSearch."""
    logger.info("Search patients by their address route has been called")
    result = await run_in_threadpool(search_index.search_by_address, address)
    return ApiResponse(
        statusCode="SEARCHED_SUCCESSFULLY",
        data=result,
        description="Patient searched successfully",
    )


@router.get("/address", response_model=ApiResponse)
async def find_by_address(
    address: str = Query(...),
    store: PatientStore = Depends(get_patient_store),
):
    """Exact address match through the DynamoDB Address index."""
    logger.info("Filter patients by their address route has been called")
    result = await run_in_threadpool(store.query_by_address, address)
    return ApiResponse(
        statusCode="FETCHED_SUCCESSFULLY",
        data=result,
        description="Patient fetched successfully",
    )


@router.get("/condition", response_model=ApiResponse)
async def find_by_condition(
    condition: str = Query(...),
    store: PatientStore = Depends(get_patient_store),
):
    """Scan DynamoDB for patients whose Conditions contain the value."""
    logger.info("Filter patients by their physical condition route has been called")
    result = await run_in_threadpool(store.scan_by_condition, condition)
    return ApiResponse(
        statusCode="FETCHED_SUCCESSFULLY",
        data=result,
        description="Patient fetched successfully",
    )


@router.get("/{patient_id}", response_model=ApiResponse)
async def get_patient(
    patient_id: str,
    store: PatientStore = Depends(get_patient_store),
):
    # a missing record is still a 200, with data null
    logger.info("Get patient by id route has been called")
    result = await run_in_threadpool(store.get, patient_id)
    return ApiResponse(
        statusCode="FETCHED_SUCCESSFULLY",
        data=result,
        description="Patient fetched successfully",
    )
