"""Tests for the Firebase clients."""
from unittest.mock import AsyncMock, MagicMock

import firebase_admin
import pytest
from google.api_core import exceptions as google_exceptions
from google.auth.exceptions import DefaultCredentialsError

from electromart.clients import firebase
from electromart.config import FirebaseSettings
from electromart.exceptions import (
    IdentityUnavailableError,
    NotFoundError,
    StoreUnavailableError,
    UnauthenticatedError,
    UpstreamError,
)

# Passes the placeholder checks but is not a parseable private key
BROKEN_KEY_SETTINGS = FirebaseSettings(project_id="p", client_email="svc@p.iam", private_key="not-a-key")


# ============================================================================
# CONNECT
# ============================================================================


def test_connect_without_credentials_returns_none():
    assert firebase.connect(FirebaseSettings()) is None


class TestConnect:

    @pytest.fixture(autouse=True)
    def release_app(self):
        yield
        try:
            firebase_admin.delete_app(firebase_admin.get_app(firebase.APP_NAME))
        except ValueError:
            pass

    def test_unresolvable_default_credentials_disable_firebase(self, monkeypatch):
        monkeypatch.setattr(
            firebase.firestore_async,
            "client",
            MagicMock(side_effect=DefaultCredentialsError("Your default credentials were not found")),
        )

        assert firebase.connect(BROKEN_KEY_SETTINGS) is None
        with pytest.raises(ValueError):
            firebase_admin.get_app(firebase.APP_NAME)

    def test_falls_back_to_default_credentials(self, monkeypatch):
        client = MagicMock()
        monkeypatch.setattr(firebase.firestore_async, "client", MagicMock(return_value=client))

        app = firebase.connect(BROKEN_KEY_SETTINGS)

        assert app is firebase_admin.get_app(firebase.APP_NAME)
        assert app.project_id == "p"
        firebase.firestore_async.client.assert_called_once_with(app)


# ============================================================================
# CONFIGURED STORE
# ============================================================================


def make_snapshot(doc_id, data, exists=True):
    snapshot = MagicMock()
    snapshot.id = doc_id
    snapshot.exists = exists
    snapshot.to_dict.return_value = data
    return snapshot


async def stream_of(*snapshots):
    for snapshot in snapshots:
        yield snapshot


@pytest.fixture
def firestore_client(monkeypatch):
    client = MagicMock()
    ref = client.collection.return_value.document.return_value
    ref.get = AsyncMock()
    ref.update = AsyncMock()
    ref.delete = AsyncMock()
    monkeypatch.setattr(firebase.firestore_async, "client", MagicMock(return_value=client))
    return client


@pytest.fixture
def doc_ref(firestore_client):
    return firestore_client.collection.return_value.document.return_value


@pytest.fixture
def store(firestore_client):
    return firebase.DocumentStore(MagicMock(name="app"))


class TestConfiguredStore:

    def test_reports_configured(self, store):
        assert store.is_configured

    @pytest.mark.asyncio
    async def test_get_document_merges_id(self, store, firestore_client, doc_ref):
        doc_ref.get.return_value = make_snapshot("O1", {"orderStatus": "SHIPPED"})

        document = await store.get_document("orders", "O1")

        assert document == {"id": "O1", "orderStatus": "SHIPPED"}
        firestore_client.collection.assert_called_with("orders")
        firestore_client.collection.return_value.document.assert_called_with("O1")

    @pytest.mark.asyncio
    async def test_get_document_missing(self, store, doc_ref):
        doc_ref.get.return_value = make_snapshot("O1", None, exists=False)

        assert await store.get_document("orders", "O1") is None

    @pytest.mark.asyncio
    async def test_get_document_upstream_failure(self, store, doc_ref):
        doc_ref.get.side_effect = google_exceptions.ServiceUnavailable("backend down")

        with pytest.raises(UpstreamError, match="Failed to get document"):
            await store.get_document("orders", "O1")

    @pytest.mark.asyncio
    async def test_find_documents_applies_each_filter(self, store, firestore_client):
        query = firestore_client.collection.return_value.where.return_value
        query.where.return_value = query
        query.stream.return_value = stream_of(
            make_snapshot("O1", {"userId": "u1"}),
            make_snapshot("O2", None),
        )

        documents = await store.find_documents("orders", userId="u1", orderStatus="SHIPPED")

        assert documents == [{"id": "O1", "userId": "u1"}, {"id": "O2"}]
        first_filter = firestore_client.collection.return_value.where.call_args.kwargs["filter"]
        second_filter = query.where.call_args.kwargs["filter"]
        assert (first_filter.field_path, first_filter.op_string, first_filter.value) == ("userId", "==", "u1")
        assert (second_filter.field_path, second_filter.value) == ("orderStatus", "SHIPPED")

    @pytest.mark.asyncio
    async def test_add_document(self, store, firestore_client):
        firestore_client.collection.return_value.add = AsyncMock(return_value=(None, MagicMock(id="new1")))

        document = await store.add_document("users", {"name": "A"})

        assert document == {"id": "new1", "name": "A"}

    @pytest.mark.asyncio
    async def test_update_missing_document_is_not_found(self, store, doc_ref):
        doc_ref.update.side_effect = google_exceptions.NotFound("No document to update")

        with pytest.raises(NotFoundError, match="Document not found"):
            await store.update_document("orders", "O1", {"a": 1})

    @pytest.mark.asyncio
    async def test_update_upstream_failure(self, store, doc_ref):
        doc_ref.update.side_effect = google_exceptions.DeadlineExceeded("slow")

        with pytest.raises(UpstreamError):
            await store.update_document("orders", "O1", {"a": 1})

    @pytest.mark.asyncio
    async def test_delete_document(self, store, doc_ref):
        await store.delete_document("orders", "O1")

        doc_ref.delete.assert_awaited_once()


class TestUpdateInTransaction:

    @pytest.fixture(autouse=True)
    def plain_transactional(self, monkeypatch):
        # Run the transaction body once, without the SDK's begin/commit/retry loop
        monkeypatch.setattr(firebase.firestore, "async_transactional", lambda fn: fn)

    @pytest.fixture
    def transaction(self, firestore_client):
        return firestore_client.transaction.return_value

    @pytest.mark.asyncio
    async def test_reads_and_writes_through_the_transaction(self, store, doc_ref, transaction):
        doc_ref.get.return_value = make_snapshot("O1", {"orderStatus": "SHIPPED", "userId": "u1"})
        seen = []

        def mutate(current):
            seen.append(current)
            return {"orderStatus": "DELIVERED"}

        result = await store.update_in_transaction("orders", "O1", mutate)

        assert seen == [{"id": "O1", "orderStatus": "SHIPPED", "userId": "u1"}]
        doc_ref.get.assert_awaited_once_with(transaction=transaction)
        transaction.update.assert_called_once_with(doc_ref, {"orderStatus": "DELIVERED"})
        assert result == {"id": "O1", "orderStatus": "DELIVERED", "userId": "u1"}

    @pytest.mark.asyncio
    async def test_missing_document_is_passed_as_none(self, store, doc_ref, transaction):
        doc_ref.get.return_value = make_snapshot("O1", None, exists=False)

        def mutate(current):
            assert current is None
            raise NotFoundError("Order not found")

        with pytest.raises(NotFoundError):
            await store.update_in_transaction("orders", "O1", mutate)

        transaction.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_mutate_failure_writes_nothing(self, store, doc_ref, transaction):
        doc_ref.get.return_value = make_snapshot("O1", {"orderStatus": "DELIVERED"})

        def mutate(current):
            raise ValueError("rejected")

        with pytest.raises(ValueError):
            await store.update_in_transaction("orders", "O1", mutate)

        transaction.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_commit_failure_is_upstream_error(self, store, doc_ref, transaction):
        doc_ref.get.return_value = make_snapshot("O1", {})
        transaction.update.side_effect = google_exceptions.Aborted("contention")

        with pytest.raises(UpstreamError):
            await store.update_in_transaction("orders", "O1", lambda current: {"a": 1})


# ============================================================================
# UNCONFIGURED
# ============================================================================


class TestUnconfiguredStore:

    @pytest.fixture
    def store(self):
        return firebase.DocumentStore(None)

    def test_reports_unconfigured(self, store):
        assert not store.is_configured

    @pytest.mark.asyncio
    async def test_every_operation_fails_fast(self, store):
        with pytest.raises(StoreUnavailableError, match="FIREBASE_PROJECT_ID"):
            await store.get_document("orders", "O1")
        with pytest.raises(StoreUnavailableError):
            await store.list_documents("orders")
        with pytest.raises(StoreUnavailableError):
            await store.find_documents("orders", userId="u1")
        with pytest.raises(StoreUnavailableError):
            await store.add_document("orders", {"a": 1})
        with pytest.raises(StoreUnavailableError):
            await store.update_document("orders", "O1", {"a": 1})
        with pytest.raises(StoreUnavailableError):
            await store.delete_document("orders", "O1")
        with pytest.raises(StoreUnavailableError):
            await store.update_in_transaction("orders", "O1", lambda order: {})


# ============================================================================
# IDENTITY
# ============================================================================


@pytest.mark.asyncio
async def test_unconfigured_identity():
    with pytest.raises(IdentityUnavailableError):
        await firebase.IdentityVerifier(None).verify("token")


@pytest.mark.asyncio
async def test_invalid_token_is_unauthenticated(monkeypatch):
    monkeypatch.setattr(firebase.auth, "verify_id_token", MagicMock(side_effect=ValueError("malformed")))

    with pytest.raises(UnauthenticatedError, match="Invalid or expired token"):
        await firebase.IdentityVerifier(MagicMock(name="app")).verify("forged")
