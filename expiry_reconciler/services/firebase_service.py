import os
import logging
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions as google_exceptions
from google.auth import exceptions as auth_exceptions

from expiry_reconciler.core.exceptions import DocumentStoreError, NotFoundError

logger = logging.getLogger(__name__)

# Anything the Firestore client raises for transport, auth, quota or bad input
FIRESTORE_ERRORS = (
    ValueError,
    OSError,
    google_exceptions.GoogleAPIError,
    auth_exceptions.GoogleAuthError,
)


class FirebaseService:
    """
    Document Store backed by Firebase Firestore.

    Documents are addressed by collection name and document id. Reads return
    the document data as a plain dict; writes are partial merges so fields
    other than the ones written are left untouched.
    """

    def __init__(self,
                 project_id: Optional[str] = None,
                 service_account_path: Optional[str] = None,
                 db: Any = None):
        """
        Initialize the Firestore client.

        Args:
            project_id: The GCP project ID (optional)
            service_account_path: Path to a service account JSON file (optional)
            db: An existing Firestore client to use instead of initializing one
        """
        if db is not None:
            self.db = db
            self._owns_client = False
            return

        try:
            if not firebase_admin._apps:
                options = {'projectId': project_id} if project_id else None
                if service_account_path and os.path.exists(service_account_path):
                    logger.info(f"Using service account credentials from {service_account_path}")
                    cred = credentials.Certificate(service_account_path)
                    firebase_admin.initialize_app(cred, options=options)
                else:
                    if service_account_path:
                        logger.warning(f"Firebase credentials file not found at {service_account_path}")
                    if project_id:
                        logger.info(f"Using application default credentials with project ID: {project_id}")
                    else:
                        logger.warning("Using application default credentials without project ID")
                    firebase_admin.initialize_app(options=options)

            self.db = firestore.client()
            self._owns_client = True
            logger.info("Firebase initialized successfully")

        except FIRESTORE_ERRORS as e:
            logger.error(f"Error initializing Firebase: {e}")
            raise DocumentStoreError(f"failed to initialize Firestore client: {e}") from e

    def _document(self, collection: str, key: str):
        return self.db.collection(collection).document(key)

    def get_document(self, collection: str, key: str) -> Dict[str, Any]:
        """
        Fetch a document by id.

        Args:
            collection: The collection name
            key: The document id

        Returns:
            The document data

        Raises:
            NotFoundError: If the document does not exist
            DocumentStoreError: On any other failure
        """
        try:
            snapshot = self._document(collection, key).get()
        except google_exceptions.NotFound as e:
            raise NotFoundError(f"document {collection}/{key} not found", key=key) from e
        except FIRESTORE_ERRORS as e:
            raise DocumentStoreError(f"error reading document {collection}/{key}: {e}", key=key) from e

        if not snapshot.exists:
            raise NotFoundError(f"document {collection}/{key} not found", key=key)

        return snapshot.to_dict() or {}

    def merge_update(self, collection: str, key: str, fields: Dict[str, Any]) -> None:
        """
        Merge the given fields into a document, leaving other fields untouched.

        Args:
            collection: The collection name
            key: The document id
            fields: Field values to write

        Raises:
            DocumentStoreError: If the write fails
        """
        try:
            self._document(collection, key).set(fields, merge=True)
        except FIRESTORE_ERRORS as e:
            raise DocumentStoreError(f"error updating document {collection}/{key}: {e}", key=key) from e

    def close(self) -> None:
        """Close the underlying Firestore client if this service created it."""
        if self._owns_client and hasattr(self.db, 'close'):
            self.db.close()
