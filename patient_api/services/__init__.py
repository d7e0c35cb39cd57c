"""
Service layer: the DynamoDB record store, the OpenSearch index and logging.

Import the modules directly; this package keeps no import side effects
because ``core.errors`` loads ``services.logger`` early.
"""
