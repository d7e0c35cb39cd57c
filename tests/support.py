"""In-memory stand-ins for DynamoDB, OpenSearch and the Cognito key set."""
import copy
import json
import re
import time

import jwt
from botocore.exceptions import ClientError
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient
from jwt.algorithms import RSAAlgorithm
from opensearchpy import NotFoundError

from patient_api.core.auth_utils import SigningKeyCache, TokenVerifier
from patient_api.core.config import Settings
from patient_api.main import create_app
from patient_api.services.patient_store import PatientStore
from patient_api.services.search_index import SearchIndex

TEST_SETTINGS = Settings(
    _env_file=None,
    AWS_REGION="us-east-1",
    AWS_USER_POOL_ID="us-east-1_TestPool",
    AWS_POOL_CLIENT_ID="test-client-id",
)
ISSUER = TEST_SETTINGS.token_issuer
CLIENT_ID = TEST_SETTINGS.AWS_POOL_CLIENT_ID


class FakeTable:
    """Just enough of a boto3 Table to serve the expressions PatientStore sends."""

    def __init__(self):
        self.items = {}

    def put_item(self, Item):
        self.items[Item["PatientID"]] = copy.deepcopy(Item)
        return {}

    def get_item(self, Key):
        item = self.items.get(Key["PatientID"])
        return {"Item": copy.deepcopy(item)} if item else {}

    def update_item(self, Key, UpdateExpression, ExpressionAttributeNames,
                    ExpressionAttributeValues, ConditionExpression=None, ReturnValues="NONE"):
        item = self.items.get(Key["PatientID"])
        if item is None:
            raise ClientError(
                {"Error": {"Code": "ConditionalCheckFailedException",
                           "Message": "The conditional request failed"}},
                "UpdateItem",
            )
        for placeholder, attribute in ExpressionAttributeNames.items():
            item[attribute] = copy.deepcopy(ExpressionAttributeValues[":" + placeholder[1:]])
        return {"Attributes": copy.deepcopy(item)}

    def delete_item(self, Key, ReturnValues="NONE"):
        old = self.items.pop(Key["PatientID"], None)
        return {"Attributes": old} if old else {}

    def query(self, IndexName, KeyConditionExpression, ExpressionAttributeValues):
        address = ExpressionAttributeValues[":address"]
        found = [copy.deepcopy(i) for i in self.items.values() if i.get("Address") == address]
        return {"Items": found, "Count": len(found)}

    def scan(self, FilterExpression, ExpressionAttributeNames, ExpressionAttributeValues):
        condition = ExpressionAttributeValues[":condition"]
        found = [copy.deepcopy(i) for i in self.items.values() if condition in i.get("Conditions", [])]
        return {"Items": found, "Count": len(found)}


def _terms(value):
    if isinstance(value, list):
        value = " ".join(value)
    return set(re.findall(r"\w+", str(value or "").lower()))


class FakeOpenSearch:
    """Document store answering match queries by shared lowercase terms."""

    def __init__(self):
        self.docs = {}

    def index(self, index, id, body):
        self.docs[id] = copy.deepcopy(body)
        return {"_id": id, "result": "created"}

    def delete(self, index, id):
        if id not in self.docs:
            raise NotFoundError(404, "not_found", {"_id": id, "result": "not_found"})
        del self.docs[id]
        return {"_id": id, "result": "deleted"}

    def search(self, index, body):
        field, text = next(iter(body["query"]["match"].items()))
        wanted = _terms(text)
        hits = [
            {"_index": index, "_id": doc_id, "_score": 1.0, "_source": copy.deepcopy(doc)}
            for doc_id, doc in self.docs.items()
            if wanted & _terms(doc.get(field))
        ]
        return {"hits": {"total": {"value": len(hits)}, "hits": hits}}


class TokenFactory:
    """Mints RS256 access tokens shaped like Cognito's."""

    def __init__(self, kid="test-kid"):
        self.kid = kid
        self.private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)

    def jwks(self):
        jwk = json.loads(RSAAlgorithm.to_jwk(self.private_key.public_key()))
        jwk.update(kid=self.kid, alg="RS256", use="sig")
        return {"keys": [jwk]}

    def mint(self, kid="default", **overrides):
        now = int(time.time())
        claims = {
            "sub": "user-1",
            "client_id": CLIENT_ID,
            "iss": ISSUER,
            "token_use": "access",
            "iat": now,
            "exp": now + 3600,
        }
        claims.update(overrides)
        claims = {k: v for k, v in claims.items() if v is not None}
        headers = {} if kid is None else {"kid": self.kid if kid == "default" else kid}
        return jwt.encode(claims, self.private_key, algorithm="RS256", headers=headers)


# one RSA key for the whole run, generation is slow
TOKENS = TokenFactory()


class CountingFetch:
    def __init__(self, jwks):
        self.jwks = jwks
        self.calls = 0

    def __call__(self, url):
        self.calls += 1
        return self.jwks


def build_verifier(clock=time.time, jwks=None):
    fetch = CountingFetch(jwks or TOKENS.jwks())
    cache = SigningKeyCache(TEST_SETTINGS.jwks_url, fetch=fetch, clock=clock)
    return TokenVerifier(ISSUER, CLIENT_ID, cache, clock=clock)


def build_client(patient_store=None, search_index=None, token_verifier=None, **client_kwargs):
    """TestClient over fakes; startup hooks are not run so no AWS client is built."""
    if search_index is None:
        search_index = SearchIndex(FakeOpenSearch())
    if patient_store is None:
        patient_store = PatientStore(FakeTable(), search_index)
    app = create_app(
        TEST_SETTINGS,
        patient_store=patient_store,
        search_index=search_index,
        token_verifier=token_verifier or build_verifier(),
    )
    return TestClient(app, **client_kwargs)


def auth_headers(token=None):
    return {"Authorization": token or TOKENS.mint()}
