"""Constants for the PostgreSQL Operator."""

from enum import Enum

# API Group
API_GROUP = "db.my.domain"
API_VERSION = "v1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"

# Resource Kinds
KIND_POSTGRESQL = "PostgreSQL"
PLURAL_POSTGRESQL = "postgresqls"

# Labels
LABEL_NAME = "app.kubernetes.io/name"
LABEL_INSTANCE = "app.kubernetes.io/instance"
LABEL_COMPONENT = "app.kubernetes.io/component"
LABEL_MANAGED_BY = "app.kubernetes.io/managed-by"
LABEL_CLUSTER = f"{API_GROUP}/cluster"

APP_NAME = "postgresql"
MANAGED_BY = "postgresql-operator"

# Field Manager
FIELD_MANAGER = "postgresql-operator"

# Child naming
NAME_PREFIX = "postgresql"
SUFFIX_CONFIG = "config"
SUFFIX_DATA = "data"
MAX_NAME_LENGTH = 63

# Workload defaults
CONTAINER_NAME = "postgres"
DATA_VOLUME_NAME = "postgres-data"
DATA_MOUNT_PATH = "/var/lib/postgresql/data"
PGDATA_PATH = f"{DATA_MOUNT_PATH}/pgdata"
DEFAULT_PORT = 5432
DEFAULT_REPLICAS = 1
DEFAULT_DATABASE = "postgresdb"
DEFAULT_ACCESS_MODES = ("ReadWriteOnce",)
CREDENTIALS_SECRET_SUFFIX = "credentials"
CREDENTIALS_USERNAME_KEY = "username"
CREDENTIALS_PASSWORD_KEY = "password"
PORT_NAME = "postgres"

# Condition Types
COND_READY = "Ready"
COND_RECONCILED = "Reconciled"
COND_SPEC_VALID = "SpecValid"
COND_STORAGE_IMMUTABLE = "StorageImmutable"

# Event Reasons
EVENT_REASON_RECONCILE_STARTED = "ReconcileStarted"
EVENT_REASON_RECONCILE_SUCCEEDED = "ReconcileSucceeded"
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_VALIDATE_FAILED = "ValidateFailed"
EVENT_REASON_CHILD_CREATED = "ResourceCreated"
EVENT_REASON_CHILD_UPDATED = "ResourceUpdated"
EVENT_REASON_IMMUTABLE_FIELD = "ImmutableFieldChanged"


class ResourceKind(str, Enum):
    """The closed set of resource kinds managed for each cluster."""

    CONFIGURATION = "ConfigMap"
    STORAGE = "PersistentVolumeClaim"
    NETWORK = "Service"
    WORKLOAD = "StatefulSet"
