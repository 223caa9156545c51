"""
Firebase client for the ElectroMart backend.

Wraps Firestore (document storage) and Firebase Auth (ID token
verification). Both are built from a single firebase_admin App which is
initialised once at startup; when Firebase is not configured the App is None
and every call fails fast with the matching *UnavailableError.
"""
import logging
from typing import Any, Callable, Dict, List, Optional

import firebase_admin
from firebase_admin import auth, credentials, firestore_async
from google.api_core import exceptions as google_exceptions
from google.auth.exceptions import DefaultCredentialsError
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from starlette.concurrency import run_in_threadpool

from ..config import FirebaseSettings
from ..exceptions import (
    IdentityUnavailableError,
    NotFoundError,
    StoreUnavailableError,
    UnauthenticatedError,
    UpstreamError,
)

logger = logging.getLogger(__name__)

APP_NAME = "electromart"


def connect(settings: FirebaseSettings) -> Optional[firebase_admin.App]:
    """
    Initialise the Firebase Admin SDK.

    Tries the service account credentials first and falls back to application
    default credentials.

    Args:
        settings: Firebase configuration group

    Returns:
        Initialised App, or None if Firebase stays disabled
    """
    if not settings.is_configured:
        logger.warning("Firebase configuration is incomplete. Firebase functionality will be disabled.")
        return None

    options = {"projectId": settings.project_id}
    try:
        app = firebase_admin.initialize_app(
            credentials.Certificate(settings.certificate()), options, name=APP_NAME
        )
        logger.info("Firebase Admin SDK initialized with service account credentials")
        return app
    except (ValueError, IOError) as e:
        logger.error(f"Failed to initialize Firebase with service account: {e}")

    app = None
    try:
        app = firebase_admin.initialize_app(credentials.ApplicationDefault(), options, name=APP_NAME)
        # Default credentials are resolved lazily; building the client forces the lookup
        firestore_async.client(app)
        logger.info("Firebase initialized with application default credentials")
        return app
    except (DefaultCredentialsError, ValueError, IOError) as e:
        logger.error(f"Failed to initialize Firebase with default credentials: {e}")
        logger.warning("Firebase functionality will be disabled until valid credentials are provided.")
        if app is not None:
            firebase_admin.delete_app(app)
        return None


def _as_record(snapshot) -> Dict[str, Any]:
    return {"id": snapshot.id, **(snapshot.to_dict() or {})}


class DocumentStore:
    """Generic CRUD over Firestore collections."""

    def __init__(self, app: Optional[firebase_admin.App]):
        self._client = firestore_async.client(app) if app is not None else None

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    def _collection(self, collection: str):
        if self._client is None:
            raise StoreUnavailableError()
        return self._client.collection(collection)

    async def get_document(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """
        Retrieve a single document by ID.

        Returns:
            Document data with its id, or None if not found
        """
        ref = self._collection(collection).document(doc_id)
        try:
            snapshot = await ref.get()
        except google_exceptions.GoogleAPICallError as e:
            logger.error(f"Error getting document {collection}/{doc_id}: {e}")
            raise UpstreamError(f"Failed to get document: {e}")
        if not snapshot.exists:
            return None
        return _as_record(snapshot)

    async def list_documents(self, collection: str) -> List[Dict[str, Any]]:
        """Retrieve every document in a collection."""
        query = self._collection(collection)
        return await self._run_query(collection, query)

    async def find_documents(self, collection: str, **equals: Any) -> List[Dict[str, Any]]:
        """
        Retrieve documents whose fields equal the given values.

        Example:
            await store.find_documents("orders", userId="u1")
        """
        query = self._collection(collection)
        for field, value in equals.items():
            query = query.where(filter=FieldFilter(field, "==", value))
        return await self._run_query(collection, query)

    async def _run_query(self, collection: str, query) -> List[Dict[str, Any]]:
        try:
            return [_as_record(snapshot) async for snapshot in query.stream()]
        except google_exceptions.GoogleAPICallError as e:
            logger.error(f"Error querying collection {collection}: {e}")
            raise UpstreamError(f"Failed to query collection: {e}")

    async def add_document(self, collection: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Add a document with a generated ID.

        Returns:
            The stored data merged with the generated id
        """
        try:
            _, ref = await self._collection(collection).add(data)
        except google_exceptions.GoogleAPICallError as e:
            logger.error(f"Error adding document to {collection}: {e}")
            raise UpstreamError(f"Failed to add document: {e}")
        logger.info(f"Added document {collection}/{ref.id}")
        return {"id": ref.id, **data}

    async def update_document(self, collection: str, doc_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge fields into an existing document.

        Raises:
            NotFoundError: If the document does not exist
        """
        ref = self._collection(collection).document(doc_id)
        try:
            await ref.update(data)
        except google_exceptions.NotFound:
            raise NotFoundError("Document not found")
        except google_exceptions.GoogleAPICallError as e:
            logger.error(f"Error updating document {collection}/{doc_id}: {e}")
            raise UpstreamError(f"Failed to update document: {e}")
        return {"id": doc_id, **data}

    async def delete_document(self, collection: str, doc_id: str) -> None:
        ref = self._collection(collection).document(doc_id)
        try:
            await ref.delete()
        except google_exceptions.GoogleAPICallError as e:
            logger.error(f"Error deleting document {collection}/{doc_id}: {e}")
            raise UpstreamError(f"Failed to delete document: {e}")
        logger.info(f"Deleted document {collection}/{doc_id}")

    async def update_in_transaction(
        self,
        collection: str,
        doc_id: str,
        mutate: Callable[[Optional[Dict[str, Any]]], Dict[str, Any]],
    ) -> Dict[str, Any]:
        """
        Read-modify-write a document atomically.

        `mutate` receives the current record (None if missing) and returns the
        fields to write. Exceptions raised by `mutate` abort the transaction
        without writing. Firestore may call `mutate` more than once on
        contention.

        Returns:
            The current record merged with the written fields
        """
        ref = self._collection(collection).document(doc_id)

        @firestore.async_transactional
        async def apply(transaction):
            snapshot = await ref.get(transaction=transaction)
            current = _as_record(snapshot) if snapshot.exists else None
            updates = mutate(current)
            transaction.update(ref, updates)
            return {**(current or {}), **updates}

        try:
            return await apply(self._client.transaction())
        except google_exceptions.GoogleAPICallError as e:
            logger.error(f"Transaction on {collection}/{doc_id} failed: {e}")
            raise UpstreamError(f"Failed to update document: {e}")


class IdentityVerifier:
    """Verifies Firebase ID tokens."""

    def __init__(self, app: Optional[firebase_admin.App]):
        self._app = app

    @property
    def is_configured(self) -> bool:
        return self._app is not None

    async def verify(self, token: str) -> Dict[str, Any]:
        """
        Verify an ID token and return its decoded claims.

        Raises:
            UnauthenticatedError: If the token is invalid, expired or revoked
            IdentityUnavailableError: If Firebase is not configured
        """
        if self._app is None:
            raise IdentityUnavailableError()
        try:
            return await run_in_threadpool(auth.verify_id_token, token, app=self._app)
        except (auth.InvalidIdTokenError, auth.CertificateFetchError, ValueError) as e:
            logger.error(f"Error verifying ID token: {e}")
            raise UnauthenticatedError("Invalid or expired token")
