import os
import sys
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, model_validator, field_validator

from lifelog.core.common import is_on, is_off


_ENV_LOADED = False

MANDATORY_ENV_VARS = [
    'POSTGRES_USER', 'POSTGRES_PASSWORD', 'POSTGRES_DB', 'POSTGRES_HOST', 'POSTGRES_PORT',
]

OPTIONAL_ENV_DEFAULTS = {
    'LIFELOG_HOST': '0.0.0.0',
    'LIFELOG_PORT': '8080',
    'LIFELOG_SCHEMA': 'lifelog',
    'LIFELOG_DEBUG': 'false',
    'LIFELOG_POOL_MIN_SIZE': '1',
    'LIFELOG_POOL_MAX_SIZE': '10',
    'LIFELOG_POOL_TIMEOUT': '10',
    'LIFELOG_STATEMENT_TIMEOUT_MS': '0',
    'LIFELOG_OPERATION_TIMEOUT': '0',
    'LIFELOG_REQUEST_TIMEOUT': '60',
    'LIFELOG_LOG_JSON': 'false',
}


def _load_env_file(path: str, allow_override: bool = False) -> None:
    """
    Minimal .env loader: loads KEY=VALUE pairs into os.environ.
    - Ignores empty lines and lines starting with '#'
    - Supports values wrapped in single or double quotes
    - By default, does not override existing environment variables
    """
    if not path or not os.path.exists(path):
        return
    try:
        with open(path, "r", encoding="utf-8") as f:
            for raw_line in f:
                line = raw_line.strip()
                if not line or line.startswith("#"):
                    continue
                if line.startswith("export "):
                    line = line[len("export "):].strip()
                if "=" not in line:
                    continue
                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip()
                if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
                    value = value[1:-1]
                if allow_override or key not in os.environ:
                    os.environ[key] = value
    except PermissionError as e:
        print(f"FATAL: Permission denied reading environment file {path}: {e}", file=sys.stderr)
        raise


def load_env_if_present(force_reload: bool = False) -> None:
    """
    Load environment variables from .env files in order of precedence:
    1. .env.local (highest priority, not committed)
    2. .env.{ENVIRONMENT} (environment-specific)
    3. .env.common (common variables)
    4. .env (default)
    LIFELOG_ENV_FILE replaces the whole list with a single file.
    """
    global _ENV_LOADED
    if _ENV_LOADED and not force_reload:
        return

    custom = os.environ.get("LIFELOG_ENV_FILE")
    if custom:
        _load_env_file(custom, allow_override=False)
    else:
        env_files = ['.env.local', '.env.common', '.env']
        environment = os.environ.get('ENVIRONMENT', '').strip()
        if environment:
            env_files.insert(1, f'.env.{environment}')

        for env_file in env_files:
            _load_env_file(env_file, allow_override=False)

    _ENV_LOADED = True


def validate_mandatory_env_vars():
    """
    Validate that all mandatory environment variables are present and not empty.
    Exit immediately if any are missing.
    """
    missing_vars = [var for var in MANDATORY_ENV_VARS if var not in os.environ]
    empty_vars = [
        var for var in MANDATORY_ENV_VARS
        if var in os.environ and not os.environ[var].strip()
    ]

    if missing_vars or empty_vars:
        error_msg = []
        if missing_vars:
            error_msg.append(f"Missing environment variables: {', '.join(missing_vars)}")
        if empty_vars:
            error_msg.append(f"Empty environment variables: {', '.join(empty_vars)}")

        print(f"FATAL: {' | '.join(error_msg)}", file=sys.stderr)
        print("FATAL: Required variables:", file=sys.stderr)
        for var in MANDATORY_ENV_VARS:
            value = os.environ.get(var, '')
            if value.strip():
                if 'PASSWORD' in var:
                    value = '*' * len(value)
                print(f"  {var}={value}", file=sys.stderr)
            else:
                print(f"  {var}=<MISSING OR EMPTY>", file=sys.stderr)

        sys.exit(1)


class Settings(BaseModel):
    """
    Lifelog application settings from environment variables.
    """
    model_config = ConfigDict(validate_assignment=True, populate_by_name=True)

    app_name: str = "Lifelog"
    app_version: str = "0.1.0"

    # HTTP runtime
    host: str = Field("0.0.0.0", alias="LIFELOG_HOST")
    port: int = Field(8080, alias="LIFELOG_PORT")
    debug: bool = Field(False, alias="LIFELOG_DEBUG")
    request_timeout: float = Field(60.0, alias="LIFELOG_REQUEST_TIMEOUT")
    log_json: bool = Field(False, alias="LIFELOG_LOG_JSON")

    # Database (required)
    postgres_user: str = Field(..., alias="POSTGRES_USER")
    postgres_password: str = Field(..., alias="POSTGRES_PASSWORD")
    postgres_db: str = Field(..., alias="POSTGRES_DB")
    postgres_host: str = Field(..., alias="POSTGRES_HOST")
    postgres_port: str = Field(..., alias="POSTGRES_PORT")
    schema_name: str = Field("lifelog", alias="LIFELOG_SCHEMA")

    # Pool and timeouts
    pool_min_size: int = Field(1, alias="LIFELOG_POOL_MIN_SIZE")
    pool_max_size: int = Field(10, alias="LIFELOG_POOL_MAX_SIZE")
    pool_timeout: float = Field(10.0, alias="LIFELOG_POOL_TIMEOUT")
    statement_timeout_ms: int = Field(0, alias="LIFELOG_STATEMENT_TIMEOUT_MS")
    operation_timeout: float = Field(0.0, alias="LIFELOG_OPERATION_TIMEOUT")

    @field_validator('postgres_user', 'postgres_password', 'postgres_db', 'postgres_host',
                     'postgres_port', 'schema_name', 'host', mode='before')
    def validate_not_empty_str(cls, v):
        if not isinstance(v, str) or not v.strip():
            raise ValueError("Value cannot be empty or whitespace only")
        return v.strip()

    @field_validator('debug', 'log_json', mode='before')
    def coerce_bool(cls, v):
        if isinstance(v, bool):
            return v
        if not isinstance(v, str):
            raise ValueError("Expected string for boolean field")
        if is_on(v):
            return True
        if is_off(v):
            return False
        raise ValueError(f"Invalid boolean value: {v}")

    @field_validator('request_timeout', 'pool_timeout', 'operation_timeout', mode='before')
    def coerce_float(cls, v):
        if isinstance(v, (int, float)):
            return float(v)
        if isinstance(v, str):
            return float(v.strip())
        raise ValueError("Expected float-compatible value")

    @field_validator('port', 'pool_min_size', 'pool_max_size', 'statement_timeout_ms', mode='before')
    def coerce_int(cls, v):
        if isinstance(v, int):
            return v
        if isinstance(v, str):
            return int(v.strip())
        raise ValueError("Expected integer-compatible value")

    @model_validator(mode='after')
    def validate_ranges(self):
        port = int(self.postgres_port)
        if port < 1 or port > 65535:
            raise ValueError(f"Invalid POSTGRES_PORT number: {port}")
        if self.port < 1 or self.port > 65535:
            raise ValueError(f"Invalid LIFELOG_PORT number: {self.port}")
        if self.pool_min_size < 0 or self.pool_max_size < max(self.pool_min_size, 1):
            raise ValueError(
                f"Invalid pool size: min={self.pool_min_size} max={self.pool_max_size}"
            )
        if self.statement_timeout_ms < 0 or self.operation_timeout < 0 or self.request_timeout <= 0:
            raise ValueError("Timeouts must not be negative")
        if not self.schema_name.replace("_", "").isalnum():
            raise ValueError(f"Invalid LIFELOG_SCHEMA value: {self.schema_name}")
        return self

    @property
    def conn_string(self) -> str:
        """libpq connection string for the application pool."""
        options = f"-c search_path={self.schema_name}"
        if self.statement_timeout_ms:
            options += f" -c statement_timeout={self.statement_timeout_ms}"
        return (
            f"dbname={self.postgres_db} user={self.postgres_user} password={self.postgres_password} "
            f"host={self.postgres_host} port={self.postgres_port} options='{options}'"
        )

    @property
    def operation_timeout_or_none(self) -> Optional[float]:
        return self.operation_timeout or None


_settings: Optional[Settings] = None


def get_settings(reload: bool = False) -> Settings:
    """
    Get application settings. Validates environment variables on first call.
    Set reload=True to force reloading from current environment.
    """
    global _settings
    if _settings is None or reload:
        load_env_if_present(force_reload=reload)

        validate_mandatory_env_vars()

        env = os.environ
        values = {var: env[var] for var in MANDATORY_ENV_VARS}
        values.update({var: env.get(var, default) for var, default in OPTIONAL_ENV_DEFAULTS.items()})
        try:
            _settings = Settings(**values)
        except Exception as e:
            print(f"FATAL: Failed to initialize settings: {e}", file=sys.stderr)
            sys.exit(1)

    return _settings

