"""
JSON schemas for configuration validation.
"""

STORE_SCHEMA = {
    "type": "object",
    "properties": {
        "backend": {"type": "string", "enum": ["memory", "postgres", "redis"]},
        # Postgres
        "dsn": {"type": "string"},
        "table_name": {"type": "string", "pattern": "^[A-Za-z0-9_]+$"},
        "min_pool_size": {"type": "integer", "minimum": 0},
        "max_pool_size": {"type": "integer", "minimum": 1},
        # Redis
        "redis_url": {"type": "string"},
        "key_prefix": {"type": "string", "minLength": 1},
        "active_ttl_seconds": {"type": "integer", "minimum": 1},
        "terminal_ttl_seconds": {"type": "integer", "minimum": 1},
        "index_cap": {"type": "integer", "minimum": 1},
    },
    "additionalProperties": False,
}

JOBS_SCHEMA = {
    "type": "object",
    "properties": {
        "instance_id": {"type": "string"},
        "default_retry_after_seconds": {"type": "integer", "minimum": 0},
        "timeout_check_interval_seconds": {"type": "number", "exclusiveMinimum": 0},
        "default_timeout_seconds": {"type": "integer", "minimum": 1},
        "base_url": {"type": ["string", "null"]},
    },
    "additionalProperties": False,
}

LOGGING_SCHEMA = {
    "type": "object",
    "properties": {
        "level": {"type": "string", "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
        "format": {"type": "string", "enum": ["text", "json"]},
        "log_file": {"type": ["string", "null"]},
    },
    "additionalProperties": False,
}

CONFIG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "lro-runtime configuration",
    "type": "object",
    "properties": {
        "store": STORE_SCHEMA,
        "jobs": JOBS_SCHEMA,
        "logging": LOGGING_SCHEMA,
    },
    "additionalProperties": False,
}
