"""
Job configuration management.

Loads job definitions from YAML files into pydantic models. A minimal file:

```yaml
job_name: importUserJob
step_name: step1
chunk_size: 10
transformer: uppercase

reader:
  path: data/sample-data.csv
  names: [first_name, last_name]

writer:
  sql: >
    INSERT INTO people (first_name, last_name)
    VALUES (%(first_name)s, %(last_name)s)

policy:
  skip_policy: skip
  skip_limit: 5
  retry_limit: 1
```

Database settings left out of the file fall back to the DB_* environment
variables read by the connection pool.
"""

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError

from batchflow.core.errors import ConfigurationError
from batchflow.core.models import Person

DEFAULT_INSERT_SQL = (
    "INSERT INTO people (first_name, last_name) "
    "VALUES (%(first_name)s, %(last_name)s)"
)

RECORD_TYPES: dict[str, type[BaseModel]] = {
    "person": Person,
}


class ReaderConfig(BaseModel):
    """Delimited input file settings."""

    path: Path
    names: list[str] = Field(default_factory=lambda: ["first_name", "last_name"], min_length=1)
    record_type: str = "person"
    delimiter: str = Field(",", min_length=1, max_length=1)
    quotechar: str = Field('"', min_length=1, max_length=1)
    lines_to_skip: int = Field(0, ge=0)
    encoding: str = "utf-8"


class WriterConfig(BaseModel):
    """Target table settings."""

    sql: str = DEFAULT_INSERT_SQL
    assert_updates: bool = True


class PolicyConfig(BaseModel):
    """Item and chunk failure policies."""

    skip_policy: Literal["skip", "abort"] = "abort"
    skip_limit: int | None = Field(None, ge=0)
    retry_limit: int = Field(0, ge=0)


class DatabaseConfig(BaseModel):
    """Connection pool settings. None means "use the DB_* environment variable"."""

    host: str | None = None
    port: int | None = None
    database: str | None = None
    user: str | None = None
    password: str | None = None
    min_size: int = Field(1, ge=0)
    max_size: int = Field(4, ge=1)
    timeout: float = Field(30.0, gt=0)


class JobConfig(BaseModel):
    """
    Complete definition of a single-step import job.

    Attributes:
        job_name: Job name, used in logs, metrics and run ids
        step_name: Name of the chunk step
        chunk_size: Records committed per transaction (>= 1)
        transformer: Registered transformer name (uppercase, passthrough)
        reader: Input file settings
        writer: Insert statement settings
        policy: Skip and retry policies
        database: Connection settings
    """

    job_name: str = Field("importUserJob", min_length=1)
    step_name: str = Field("step1", min_length=1)
    chunk_size: int = Field(10, ge=1)
    transformer: str = "uppercase"
    reader: ReaderConfig
    writer: WriterConfig = Field(default_factory=WriterConfig)
    policy: PolicyConfig = Field(default_factory=PolicyConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "JobConfig":
        """
        Validate a raw configuration mapping.

        Raises:
            ConfigurationError: If the mapping does not describe a valid job
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid job configuration: {e}") from e

    def record_class(self) -> type[BaseModel]:
        record_class = RECORD_TYPES.get(self.reader.record_type)
        if record_class is None:
            raise ConfigurationError(f"Unknown record type: {self.reader.record_type}")
        return record_class

    def with_overrides(self, overrides: dict[str, Any]) -> "JobConfig":
        """
        Return a copy with dotted-key overrides applied, e.g.
        {"chunk_size": 5, "policy.skip_policy": "skip"}. None values are ignored.
        """
        data = self.model_dump()
        for dotted_key, value in overrides.items():
            if value is None:
                continue
            target = data
            *parents, key = dotted_key.split(".")
            for parent in parents:
                target = target.setdefault(parent, {})
            target[key] = value
        return JobConfig.from_dict(data)


class JobConfigLoader:
    """
    Loads a JobConfig from a YAML file.
    """

    def __init__(self, config_path: str | Path):
        """
        Args:
            config_path: Path to the YAML configuration file

        Raises:
            ConfigurationError: If the file does not exist
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise ConfigurationError(f"Job configuration file not found: {config_path}")

    def load(self) -> JobConfig:
        """
        Parse the file and validate it.

        Relative reader paths are resolved against the file's directory.

        Raises:
            ConfigurationError: If the YAML is malformed or invalid
        """
        try:
            with open(self.config_path) as f:
                raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Malformed YAML in {self.config_path}: {e}") from e

        if not isinstance(raw, dict):
            raise ConfigurationError("Job configuration must be a mapping")
        if "reader" not in raw:
            raise ConfigurationError("Job configuration must contain a 'reader' section")

        config = JobConfig.from_dict(raw)

        if not config.reader.path.is_absolute():
            resolved = (self.config_path.parent / config.reader.path).resolve()
            config = config.with_overrides({"reader.path": str(resolved)})

        return config
