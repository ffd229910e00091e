# Standardized Cosmos DB client implementation

import os
import time
import logging
import backoff
from functools import lru_cache
from typing import Optional, List, Dict, Any
from azure.cosmos import CosmosClient, exceptions
from azure.cosmos.container import ContainerProxy
from ideacal.specs.common.errors import ConfigurationError


class RetryableCosmosError(Exception):
    """Indicates a Cosmos DB operation that should be retried"""
    pass


def _is_retryable(exc: exceptions.CosmosHttpResponseError) -> bool:
    return exc.status_code in (429, 503)  # Too Many Requests or Service Unavailable


class CosmosDBClient:
    # Max retries and timeout configuration
    MAX_RETRIES = 3
    OPERATION_TIMEOUT = 10.0    # 10s

    def __init__(self):
        """Initialize the Cosmos DB client with connection settings and retry policy"""
        self.connection_string = os.environ.get("COSMOS_DB_CONNECTION_STRING")
        self.database_name = os.environ.get("COSMOS_DB_NAME")

        if not self.connection_string or not self.database_name:
            raise ConfigurationError("Missing Cosmos DB connection string or database name")

        self.client = CosmosClient.from_connection_string(
            self.connection_string,
            retry_total=self.MAX_RETRIES
        )
        self.database = self.client.get_database_client(self.database_name)

    def get_container(self, container_name: str) -> ContainerProxy:
        """
        Get a container by name with environment variable override

        ``COSMOS_DB_CONTAINER_<NAME>`` wins over the logical name.
        """
        env_container_name = os.environ.get(f"COSMOS_DB_CONTAINER_{container_name.upper()}")
        return self.database.get_container_client(env_container_name or container_name)

    @backoff.on_exception(
        backoff.expo,
        RetryableCosmosError,
        max_tries=MAX_RETRIES,
        max_time=OPERATION_TIMEOUT
    )
    def read_item(
        self,
        container_name: str,
        item_id: str,
        partition_key: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Point-read an item

        Returns:
            The item if found, None if not found

        Raises:
            RetryableCosmosError: If operation should be retried
        """
        container = self.get_container(container_name)
        try:
            return container.read_item(item=item_id, partition_key=partition_key or item_id)
        except exceptions.CosmosResourceNotFoundError:
            logging.debug(f"Item not found: {item_id}")
            return None
        except exceptions.CosmosHttpResponseError as e:
            if _is_retryable(e):
                raise RetryableCosmosError(f"Retryable error reading item '{item_id}': {e}") from e
            raise

    @backoff.on_exception(
        backoff.expo,
        RetryableCosmosError,
        max_tries=MAX_RETRIES,
        max_time=OPERATION_TIMEOUT
    )
    def query_items(
        self,
        container_name: str,
        query: str,
        parameters: Optional[List[Dict[str, Any]]] = None
    ) -> List[Dict[str, Any]]:
        """
        Query items with parameterized queries for safety

        Args:
            container_name: Name of the container
            query: The query to execute (use @param syntax for parameters)
            parameters: List of parameter dictionaries with 'name' and 'value'
        """
        container = self.get_container(container_name)
        try:
            return list(container.query_items(
                query=query,
                parameters=parameters or [],
                enable_cross_partition_query=True
            ))
        except exceptions.CosmosHttpResponseError as e:
            if _is_retryable(e):
                raise RetryableCosmosError(f"Retryable error querying '{container_name}': {e}") from e
            raise

    @backoff.on_exception(
        backoff.expo,
        RetryableCosmosError,
        max_tries=MAX_RETRIES,
        max_time=OPERATION_TIMEOUT
    )
    def create_item(self, container_name: str, item: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create an item; never overwrites.

        Raises:
            exceptions.CosmosResourceExistsError: If an item with the same id (or unique key) exists
            RetryableCosmosError: If operation should be retried
        """
        start_time = time.time()
        container = self.get_container(container_name)
        try:
            created = container.create_item(body=item)
            logging.debug(f"Created item '{item.get('id')}' in {time.time() - start_time:.2f}s")
            return created
        except exceptions.CosmosResourceExistsError:
            raise
        except exceptions.CosmosHttpResponseError as e:
            if _is_retryable(e):
                raise RetryableCosmosError(f"Retryable error creating item '{item.get('id')}': {e}") from e
            raise

    def upsert_item(self, container_name: str, item: Dict[str, Any]) -> Dict[str, Any]:
        container = self.get_container(container_name)
        return container.upsert_item(body=item)

    @backoff.on_exception(
        backoff.expo,
        RetryableCosmosError,
        max_tries=MAX_RETRIES,
        max_time=OPERATION_TIMEOUT
    )
    def delete_item(
        self,
        container_name: str,
        item_id: str,
        partition_key: Optional[str] = None
    ) -> bool:
        """
        Delete an item by ID with retries

        Returns:
            False when the item did not exist
        """
        container = self.get_container(container_name)
        try:
            container.delete_item(item=item_id, partition_key=partition_key or item_id)
            return True
        except exceptions.CosmosResourceNotFoundError:
            # Item doesn't exist, treat as success but log for tracking
            logging.info(f"Item '{item_id}' not found during delete - already deleted")
            return False
        except exceptions.CosmosHttpResponseError as e:
            if _is_retryable(e):
                error_msg = f"Retryable error deleting item '{item_id}': {e}"
                logging.warning(error_msg)
                raise RetryableCosmosError(error_msg) from e
            logging.error(f"Error deleting item '{item_id}': {e}")
            raise


# Singleton instance with caching
@lru_cache(maxsize=1)
def get_cosmos_client() -> CosmosDBClient:
    """Get or create the singleton CosmosDBClient instance"""
    return CosmosDBClient()
