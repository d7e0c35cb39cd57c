from typing import Optional

import uvicorn
from fastapi import FastAPI

from patient_api.api.routes import patients
from patient_api.core import aws
from patient_api.core.auth_utils import TokenVerifier
from patient_api.core.config import Settings, settings as default_settings
from patient_api.core.errors import register_error_handlers
from patient_api.services.logger import configure_logging, get_logger
from patient_api.services.patient_store import PatientStore
from patient_api.services.search_index import SearchIndex

logger = get_logger("main")


def create_app(
    settings: Optional[Settings] = None,
    patient_store: Optional[PatientStore] = None,
    search_index: Optional[SearchIndex] = None,
    token_verifier: Optional[TokenVerifier] = None,
) -> FastAPI:
    """Build the API. Anything not passed in is created from settings at startup."""
    settings = settings or default_settings
    app = FastAPI(title="Patient Management API")
    app.state.settings = settings
    app.state.search_index = search_index
    app.state.patient_store = patient_store
    app.state.token_verifier = token_verifier

    @app.on_event("startup")
    def startup():
        """Initialize AWS clients and the token verifier at app startup."""
        configure_logging(settings.LOG_LEVEL, settings.PATIENT_API_DEBUG)

        if app.state.search_index is None:
            app.state.search_index = SearchIndex(
                aws.init_opensearch(settings), settings.OPENSEARCH_INDEX_NAME
            )
        if app.state.patient_store is None:
            app.state.patient_store = PatientStore(
                aws.init_dynamo_table(settings),
                app.state.search_index,
                address_index=settings.DYNAMODB_ADDRESS_INDEX,
            )
        if app.state.token_verifier is None:
            app.state.token_verifier = TokenVerifier.from_settings(settings)

    @app.get("/")
    async def root():
        return {"message": "Patient Management API"}

    @app.get("/health")
    async def health_check():
        return {"status": "ok"}

    register_error_handlers(app)
    app.include_router(patients.router)
    return app


app = create_app()


def run():
    configure_logging(default_settings.LOG_LEVEL, default_settings.PATIENT_API_DEBUG)
    logger.info("Server running on port %s", default_settings.PORT)
    uvicorn.run(app, host=default_settings.HOST, port=default_settings.PORT)


if __name__ == "__main__":
    run()
