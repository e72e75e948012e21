"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (UNITCOV__SECTION__KEY)
3. YAML config (unitcov.yaml in the project root, or an explicit file)
4. Built-in defaults (this file)

Environment Variable Format:
    UNITCOV__<SECTION>__<KEY>=<VALUE>

Examples:
    UNITCOV__LOGGING__LEVEL=DEBUG
    UNITCOV__COVERAGE__FORMAT='["html", "clover"]'
    UNITCOV__COVERAGE__LOWER_UPPER_BOUND=50
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from unitcov.core.errors import AmbiguousOutputPathError

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

ReportFormat = Literal["html", "xml", "clover", "snapshot", "text", "crap4j"]
DriverName = Literal["auto", "monitoring", "trace"]

# "php" was the serialized-snapshot format name in earlier releases
FORMAT_ALIASES: dict[str, str] = {"php": "snapshot"}

DEFAULT_OUTPUTS: dict[str, str] = {
    "html": "coverage",
    "xml": "coverage/xml",
    "clover": "coverage/clover.xml",
    "snapshot": "coverage/coverage.json",
    "crap4j": "coverage/crap4j.xml",
}


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        UNITCOV__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG logs every recorded unit.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


def _normalize_formats(value: Any) -> Any:
    if value is None:
        return ["html"]
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return value
    formats: list[Any] = []
    for item in value:
        if isinstance(item, str):
            item = FORMAT_ALIASES.get(item.strip().lower(), item.strip().lower())
        if item not in formats:
            formats.append(item)
    return formats


class CoverageConfig(BaseModel):
    """Coverage collection and reporting configuration.

    Validated once when built and frozen afterwards.

    Env vars:
        UNITCOV__COVERAGE__FORMAT: Report formats (JSON list)
        UNITCOV__COVERAGE__SHOW_UNCOVERED_FILES: List never-executed files in text
        UNITCOV__COVERAGE__LOWER_UPPER_BOUND: Upper bound of the "low" band (percent)
        UNITCOV__COVERAGE__HIGH_LOWER_BOUND: Lower bound of the "high" band (percent)
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    format: list[ReportFormat] = Field(
        default_factory=lambda: ["html"],
        description="Report formats to emit. 'php' is accepted as an alias of 'snapshot'.",
    )
    output: dict[ReportFormat, str] = Field(
        default_factory=dict,
        description="Destination per format. A single string is accepted when exactly "
        "one format is configured. text without a destination prints to the console.",
    )
    show_uncovered_files: bool = Field(
        default=True,
        description="Include files with no executed lines in the text report.",
    )
    lower_upper_bound: int = Field(default=35, ge=0, le=100)
    high_lower_bound: int = Field(default=70, ge=0, le=100)
    include: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("include", "whitelist"),
        description="Globs of files eligible for coverage. Empty means every file.",
    )
    exclude: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("exclude", "blacklist"),
        description="Globs of files never accounted. Excludes win over includes.",
    )
    process_uncovered_files: bool = Field(
        default=False,
        description="Add never-executed files matched by include globs with zero hits.",
    )
    driver: DriverName = "auto"
    crap_threshold: int = Field(default=30, ge=1)
    fail_fast: bool = Field(
        default=False,
        description="Raise the first renderer failure instead of collecting them all.",
    )
    project_name: str = "unitcov"

    @model_validator(mode="before")
    @classmethod
    def resolve_outputs(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        formats = _normalize_formats(data.get("format"))
        data["format"] = formats
        output = data.get("output")
        if isinstance(output, (str, Path)):
            if not isinstance(formats, list) or len(formats) != 1:
                raise AmbiguousOutputPathError.for_formats(
                    [str(f) for f in formats or []], str(output)
                )
            data["output"] = {formats[0]: str(output)}
        elif isinstance(output, dict):
            data["output"] = {
                FORMAT_ALIASES.get(str(k).lower(), str(k).lower()): str(v)
                for k, v in output.items()
            }
        elif output is None:
            data.pop("output", None)
        return data

    @model_validator(mode="after")
    def check_bounds(self) -> "CoverageConfig":
        if self.lower_upper_bound > self.high_lower_bound:
            raise ValueError(
                f"lower_upper_bound ({self.lower_upper_bound}) must not exceed "
                f"high_lower_bound ({self.high_lower_bound})"
            )
        return self

    def output_for(self, format_id: str) -> Path | None:
        """Resolved destination for a format; None means the console."""
        destination = self.output.get(format_id) or DEFAULT_OUTPUTS.get(format_id)  # type: ignore[call-overload]
        return Path(destination) if destination else None


class UnitCovConfig(BaseModel):
    """Root configuration for unitcov."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    coverage: CoverageConfig = Field(default_factory=CoverageConfig)
