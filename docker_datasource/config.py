"""
Runtime configuration for the docker datasource.

Values come from the process environment so the CLI, the API server and
library callers all share one source of truth.
"""

import os

# =============================================================================
# Registry Protocol
# =============================================================================

DEFAULT_REGISTRY_URL = "https://index.docker.io"
HOST_TYPE = "docker"

LABELS_CACHE_NAMESPACE = "datasource-docker-labels"
LABELS_CACHE_MINUTES = 60

# =============================================================================
# Environment
# =============================================================================

DOCKERHUB_IDENTIFIER = os.environ.get("DOCKERHUB_IDENTIFIER")
DOCKERHUB_SECRET = os.environ.get("DOCKERHUB_SECRET")

# JSON array of host rules, see keepers/host_rules.py
HOST_RULES_FILE = os.environ.get("DOCKER_DATASOURCE_HOST_RULES")

CACHE_DB_PATH = os.environ.get("DOCKER_DATASOURCE_CACHE_DB", "data/docker-datasource.db")

HTTP_TIMEOUT = float(os.environ.get("DOCKER_DATASOURCE_TIMEOUT", "30"))

LOG_LEVEL = os.environ.get("DOCKER_DATASOURCE_LOG_LEVEL", "INFO")
