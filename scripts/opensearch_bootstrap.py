#!/usr/bin/env python3
"""OpenSearch bootstrap script for catalog search.

Waits for the cluster and creates the products index with the mapping the
search core queries against.
"""

import argparse
import sys
import time
from typing import List, Optional

import structlog
from opensearchpy import OpenSearch

from catalog_search.common.config import SearchConfig
from catalog_search.common.logging import configure_logging
from catalog_search.search_engine.opensearch import PRODUCT_INDEX_MAPPING

logger = structlog.get_logger("opensearch_bootstrap")


def create_opensearch_client(
    hosts: List[str],
    username: Optional[str] = None,
    password: Optional[str] = None,
    verify_certs: bool = False
) -> OpenSearch:
    """Create OpenSearch client."""
    return OpenSearch(
        hosts=hosts,
        http_auth=(username, password) if username and password else None,
        verify_certs=verify_certs,
        ssl_assert_hostname=False,
        ssl_show_warn=False,
        use_ssl=hosts[0].startswith('https'),
    )


def create_products_index(client: OpenSearch, index_name: str, recreate: bool = False) -> bool:
    """Create the products index. Returns ``False`` if it already existed."""
    try:
        if client.indices.exists(index=index_name):
            if not recreate:
                logger.info("Index already exists", index_name=index_name)
                return False
            client.indices.delete(index=index_name)
            logger.info("Deleted existing index", index_name=index_name)

        client.indices.create(index=index_name, body=PRODUCT_INDEX_MAPPING)
        logger.info("Created products index", index_name=index_name)
        return True

    except Exception as e:
        logger.error("Failed to create products index", index_name=index_name, error=str(e))
        raise


def wait_for_cluster(client: OpenSearch, timeout: int = 60) -> None:
    """Wait for OpenSearch cluster to be ready."""
    start_time = time.time()

    while time.time() - start_time < timeout:
        try:
            health = client.cluster.health()
            if health['status'] in ['green', 'yellow']:
                logger.info("OpenSearch cluster is ready", status=health['status'])
                return
            logger.info("Waiting for OpenSearch cluster", status=health['status'])
        except Exception as e:
            logger.warning("Failed to check cluster health", error=str(e))
        time.sleep(5)

    raise TimeoutError("OpenSearch cluster did not become ready within timeout")


def main():
    """Main bootstrap function."""
    config = SearchConfig()

    parser = argparse.ArgumentParser(description="Bootstrap OpenSearch for catalog search")
    parser.add_argument("--hosts", default=config.catalog_opensearch_hosts, help="OpenSearch hosts (comma-separated)")
    parser.add_argument("--username", default=config.catalog_opensearch_username, help="OpenSearch username")
    parser.add_argument("--password", default=config.catalog_opensearch_password, help="OpenSearch password")
    parser.add_argument("--verify-certs", action="store_true", help="Verify SSL certificates")
    parser.add_argument("--index", default=config.catalog_opensearch_index, help="Products index name")
    parser.add_argument("--recreate", action="store_true", help="Drop and recreate the index")
    parser.add_argument("--wait-timeout", type=int, default=60, help="Cluster wait timeout in seconds")

    args = parser.parse_args()

    configure_logging("opensearch_bootstrap", config.catalog_log_level, config.catalog_log_format)

    hosts = [host.strip() for host in args.hosts.split(",")]
    client = create_opensearch_client(
        hosts=hosts,
        username=args.username,
        password=args.password,
        verify_certs=args.verify_certs
    )

    try:
        wait_for_cluster(client, args.wait_timeout)
        create_products_index(client, args.index, recreate=args.recreate)
        logger.info("OpenSearch bootstrap completed successfully")

    except Exception as e:
        logger.error("OpenSearch bootstrap failed", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
