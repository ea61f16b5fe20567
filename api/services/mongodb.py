# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
MongoDB service layer with connection pooling, atomic updates and optional
multi-document transactions.
"""

import os
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import List, Dict, Optional, Any, Iterator, Tuple
from pymongo import MongoClient, ASCENDING, DESCENDING, ReturnDocument
from pymongo.client_session import ClientSession
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import (
    ConnectionFailure,
    ServerSelectionTimeoutError,
    DuplicateKeyError
)
from bson import ObjectId
from bson.errors import InvalidId
from opentelemetry import trace

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class DuplicateDocumentError(ValueError):
    """Raised when an insert violates a unique index."""
    pass


class PaginationResult:
    """Result container for paginated queries."""

    def __init__(self, items: List[Any], total: int, page: int, page_size: int):
        self.items = items
        self.total = total
        self.page = page
        self.page_size = page_size
        self.total_pages = (total + page_size - 1) // page_size
        self.has_next = page < self.total_pages
        self.has_prev = page > 1


def _to_client_document(document: Optional[Dict]) -> Optional[Dict]:
    """Expose ``_id`` as a string ``id``."""
    if document is not None and "_id" in document:
        document["id"] = str(document.pop("_id"))
    return document


class MongoDBService:
    """MongoDB service with connection pooling and atomic document operations."""

    def __init__(self, connection_string: str = None, database_name: str = None,
                 transactions_enabled: Optional[bool] = None):
        """Initialize MongoDB service with connection pooling."""
        self.connection_string = connection_string or os.getenv(
            'MONGODB_URI',
            'mongodb://localhost:27017/reliefgrid_dev'
        )
        self.database_name = database_name or os.getenv('MONGODB_DATABASE', 'reliefgrid_dev')
        if transactions_enabled is None:
            transactions_enabled = os.getenv('MONGODB_TRANSACTIONS', 'false').lower() == 'true'
        self.transactions_enabled = transactions_enabled
        self._client: Optional[MongoClient] = None
        self._database: Optional[Database] = None

        # Connection pool settings
        self.max_pool_size = int(os.getenv('MONGODB_MAX_POOL_SIZE', '10'))
        self.min_pool_size = int(os.getenv('MONGODB_MIN_POOL_SIZE', '1'))
        self.max_idle_time_ms = int(os.getenv('MONGODB_MAX_IDLE_TIME_MS', '30000'))
        self.server_selection_timeout_ms = int(os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000'))

        logger.info(f"MongoDB service initialized for database: {self.database_name}")

    @property
    def client(self) -> MongoClient:
        """Get MongoDB client with connection pooling."""
        if self._client is None:
            try:
                self._client = MongoClient(
                    self.connection_string,
                    maxPoolSize=self.max_pool_size,
                    minPoolSize=self.min_pool_size,
                    maxIdleTimeMS=self.max_idle_time_ms,
                    serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                    retryWrites=True,
                    retryReads=True
                )
                # Test connection
                self._client.admin.command('ping')
                logger.info("MongoDB connection established successfully")
            except (ConnectionFailure, ServerSelectionTimeoutError) as e:
                logger.error(f"Failed to connect to MongoDB: {e}")
                self._client = None
                raise

        return self._client

    @property
    def database(self) -> Database:
        """Get MongoDB database."""
        if self._database is None:
            self._database = self.client[self.database_name]
        return self._database

    def get_collection(self, collection_name: str) -> Collection:
        """Get MongoDB collection."""
        return self.database[collection_name]

    def close_connection(self) -> None:
        """Close MongoDB connection."""
        if self._client:
            self._client.close()
            self._client = None
            self._database = None
            logger.info("MongoDB connection closed")

    def health_check(self) -> Dict[str, Any]:
        """Check MongoDB connection health."""
        try:
            result = self.client.admin.command('ping')
            server_info = self.client.server_info()

            return {
                'status': 'healthy',
                'ping': result.get('ok') == 1,
                'version': server_info.get('version'),
                'database': self.database_name,
                'connection_pool_size': self.max_pool_size,
                'transactions_enabled': self.transactions_enabled
            }
        except Exception as e:
            logger.error(f"MongoDB health check failed: {e}")
            return {
                'status': 'unhealthy',
                'error': str(e),
                'database': self.database_name
            }

    def _validate_object_id(self, doc_id: str) -> ObjectId:
        """Validate and convert string ID to ObjectId."""
        try:
            return ObjectId(doc_id)
        except (InvalidId, TypeError):
            raise ValueError(f"Invalid ObjectId format: {doc_id}")

    def _add_timestamps(self, document: Dict, is_update: bool = False) -> Dict:
        """Add creation and update timestamps to document."""
        now = datetime.now(timezone.utc)

        if not is_update:
            document.setdefault("createdAt", now)

        document["updatedAt"] = now

        return document

    @contextmanager
    def transaction(self) -> Iterator[Optional[ClientSession]]:
        """
        Run a block inside a multi-document transaction when enabled.

        Yields the session to pass to each operation, or None when the
        deployment does not support transactions (standalone servers).
        """
        if not self.transactions_enabled:
            yield None
            return

        with tracer.start_as_current_span("mongodb.transaction"):
            with self.client.start_session() as session:
                with session.start_transaction():
                    yield session

    # CRUD Operations

    def insert(self, collection: str, document: Dict, session: Optional[ClientSession] = None) -> str:
        """Insert a document and return its id."""
        try:
            document = self._add_timestamps(document)

            if "_id" not in document:
                document["_id"] = ObjectId()

            result = self.get_collection(collection).insert_one(document, session=session)

            logger.info(f"Created document in {collection}: {result.inserted_id}")
            return str(result.inserted_id)

        except DuplicateKeyError as e:
            logger.warning(f"Duplicate key error in {collection}: {e}")
            raise DuplicateDocumentError("Document with this identifier already exists")
        except Exception as e:
            logger.error(f"Failed to create document in {collection}: {e}")
            raise

    def find_by_id(self, collection: str, doc_id: str,
                   session: Optional[ClientSession] = None) -> Optional[Dict]:
        """Find a single document by ID; malformed ids are treated as missing."""
        try:
            object_id = self._validate_object_id(doc_id)
        except ValueError as e:
            logger.debug(f"Invalid document ID {doc_id}: {e}")
            return None

        try:
            document = self.get_collection(collection).find_one({"_id": object_id}, session=session)
            if document is None:
                logger.debug(f"Document {doc_id} not found in {collection}")
            return _to_client_document(document)
        except Exception as e:
            logger.error(f"Failed to find document {doc_id} in {collection}: {e}")
            raise

    def find_one(self, collection: str, filters: Dict) -> Optional[Dict]:
        """Find the first document matching the filters."""
        try:
            return _to_client_document(self.get_collection(collection).find_one(filters))
        except Exception as e:
            logger.error(f"Failed to find document in {collection}: {e}")
            raise

    def find(self, collection: str, filters: Dict = None,
             sort: Optional[List[Tuple[str, int]]] = None) -> List[Dict]:
        """Find all documents matching the filters."""
        try:
            cursor = self.get_collection(collection).find(filters or {})
            if sort:
                cursor = cursor.sort(sort)

            documents = [_to_client_document(doc) for doc in cursor]
            logger.debug(f"Found {len(documents)} documents in {collection}")
            return documents

        except Exception as e:
            logger.error(f"Failed to find documents in {collection}: {e}")
            raise

    def update_by_id(self, collection: str, doc_id: str, updates: Dict,
                     conditions: Optional[Dict] = None,
                     session: Optional[ClientSession] = None) -> Optional[Dict]:
        """
        Apply a ``$set`` and return the updated document.

        ``conditions`` are extra filters the document must still match, which
        makes compare-and-set updates possible. Returns None when the document
        is missing or no longer matches.
        """
        try:
            object_id = self._validate_object_id(doc_id)
        except ValueError as e:
            logger.debug(f"Invalid document ID {doc_id}: {e}")
            return None

        try:
            updates = self._add_timestamps(dict(updates), is_update=True)
            query = {"_id": object_id}
            if conditions:
                query.update(conditions)

            document = self.get_collection(collection).find_one_and_update(
                query,
                {"$set": updates},
                return_document=ReturnDocument.AFTER,
                session=session
            )

            if document is None:
                logger.warning(f"No document updated for {doc_id} in {collection}")
            else:
                logger.info(f"Updated document {doc_id} in {collection}")

            return _to_client_document(document)

        except Exception as e:
            logger.error(f"Failed to update document {doc_id} in {collection}: {e}")
            raise

    def increment(self, collection: str, doc_id: str, field: str, amount: float,
                  minimum: Optional[float] = None,
                  session: Optional[ClientSession] = None) -> Optional[Dict]:
        """
        Atomically add ``amount`` to a numeric field.

        Args:
            collection: Collection name
            doc_id: Document ID
            field: Numeric field to change
            amount: Signed delta
            minimum: When set, the update only applies if the field currently
                holds at least this value
            session: Optional transaction session

        Returns:
            The updated document, or None when the document is missing or
            the minimum guard did not match
        """
        with tracer.start_as_current_span("mongodb.increment") as span:
            span.set_attributes({
                "db.collection": collection,
                "db.field": field
            })

            try:
                object_id = self._validate_object_id(doc_id)
            except ValueError:
                return None

            query: Dict[str, Any] = {"_id": object_id}
            if minimum is not None:
                query[field] = {"$gte": minimum}

            document = self.get_collection(collection).find_one_and_update(
                query,
                {
                    "$inc": {field: amount},
                    "$set": {"updatedAt": datetime.now(timezone.utc)}
                },
                return_document=ReturnDocument.AFTER,
                session=session
            )

            span.set_attribute("db.matched", document is not None)
            return _to_client_document(document)

    def paginate(self, collection: str, page: int = 1, page_size: int = 20,
                 filters: Dict = None, sort_by: str = "createdAt",
                 sort_order: int = DESCENDING) -> PaginationResult:
        """Paginate documents with sorting and filtering."""
        try:
            query = filters or {}
            collection_obj = self.get_collection(collection)

            skip = (page - 1) * page_size
            total = collection_obj.count_documents(query)

            cursor = (
                collection_obj.find(query)
                .sort([(sort_by, sort_order), ("_id", sort_order)])
                .skip(skip)
                .limit(page_size)
            )
            documents = [_to_client_document(doc) for doc in cursor]

            logger.debug(f"Paginated {len(documents)} documents from {collection} (page {page})")
            return PaginationResult(documents, total, page, page_size)

        except Exception as e:
            logger.error(f"Failed to paginate documents in {collection}: {e}")
            raise

    def count(self, collection: str, filters: Dict = None) -> int:
        """Count documents with optional filters."""
        try:
            return self.get_collection(collection).count_documents(filters or {})
        except Exception as e:
            logger.error(f"Failed to count documents in {collection}: {e}")
            raise

    # Index Management

    def create_indexes(self) -> None:
        """Create performance indexes for all collections."""
        try:
            logger.info("Creating MongoDB indexes...")

            users = self.get_collection("users")
            users.create_index("username", unique=True)
            users.create_index([("role", ASCENDING), ("_id", ASCENDING)])
            users.create_index("assignedFireStationId")

            resources = self.get_collection("resources")
            resources.create_index([("ownerId", ASCENDING), ("createdAt", DESCENDING)])

            requests = self.get_collection("resource_requests")
            requests.create_index([("requesterId", ASCENDING), ("createdAt", DESCENDING)])
            requests.create_index([("status", ASCENDING), ("createdAt", DESCENDING)])

            donations = self.get_collection("donations")
            donations.create_index([("donorId", ASCENDING), ("createdAt", DESCENDING)])
            donations.create_index([("recipientId", ASCENDING), ("createdAt", DESCENDING)])

            volunteers = self.get_collection("volunteers")
            volunteers.create_index([("fireStationId", ASCENDING), ("createdAt", DESCENDING)])
            volunteers.create_index("userId")

            emergencies = self.get_collection("emergencies")
            emergencies.create_index([("status", ASCENDING), ("createdAt", DESCENDING)])
            emergencies.create_index("reporterId")

            notifications = self.get_collection("notifications")
            notifications.create_index([("userId", ASCENDING), ("createdAt", DESCENDING)])
            notifications.create_index([("userId", ASCENDING), ("read", ASCENDING)])

            logger.info("MongoDB indexes created successfully")

        except Exception as e:
            logger.error(f"Failed to create MongoDB indexes: {e}")
            raise


# Singleton instance for application use
_mongodb_service: Optional[MongoDBService] = None


def get_mongodb_service() -> MongoDBService:
    """Get singleton MongoDB service instance."""
    global _mongodb_service
    if _mongodb_service is None:
        _mongodb_service = MongoDBService()
    return _mongodb_service


def close_mongodb_connection() -> None:
    """Close MongoDB connection (for cleanup)."""
    global _mongodb_service
    if _mongodb_service:
        _mongodb_service.close_connection()
        _mongodb_service = None
