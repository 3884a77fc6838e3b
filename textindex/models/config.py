"""Scan configuration, built once at startup and passed to the scan."""
import os
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_EXTENSIONS = frozenset({".txt", ".md"})
DEFAULT_MAX_BYTES = 5 * 1024 * 1024  # 5 MiB per file
MANIFEST_FILENAME = "index.json"

ENV_PREFIX = "TEXTINDEX_"


def default_concurrency() -> int:
    """Available parallelism clamped to [2, 8]."""
    return max(2, min(os.cpu_count() or 1, 8))


class ScanConfig(BaseModel):
    """Everything a scan needs to know, fixed for the whole run."""
    model_config = ConfigDict(frozen=True)

    root_dir: Path = Field(default_factory=Path.cwd)
    output_path: Optional[Path] = None  # defaults to <root_dir>/index.json
    allowed_extensions: frozenset[str] = DEFAULT_EXTENSIONS
    max_bytes: int = DEFAULT_MAX_BYTES
    concurrency: int = Field(default_factory=default_concurrency)
    exclude_dirs: frozenset[str] = frozenset()
    decode_errors: Literal["replace", "strict"] = "replace"  # cached entries are reused as-is
    create_root: bool = False

    @field_validator('allowed_extensions')
    @classmethod
    def normalize_extensions(cls, v: frozenset[str]) -> frozenset[str]:
        """Lowercase each extension and make sure it starts with a dot."""
        normalized = set()
        for ext in v:
            ext = ext.strip().lower()
            if not ext:
                continue
            normalized.add(ext if ext.startswith(".") else f".{ext}")
        if not normalized:
            raise ValueError('allowed_extensions must not be empty')
        return frozenset(normalized)

    @field_validator('max_bytes')
    @classmethod
    def validate_max_bytes(cls, v: int) -> int:
        if v < 0:
            raise ValueError('max_bytes must be non-negative')
        return v

    @field_validator('concurrency')
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError('concurrency must be at least 1')
        return v

    @field_validator('root_dir')
    @classmethod
    def resolve_root(cls, v: Path) -> Path:
        return v.expanduser().resolve()

    @field_validator('output_path')
    @classmethod
    def resolve_output(cls, v: Optional[Path]) -> Optional[Path]:
        return v.expanduser().resolve() if v is not None else None

    @property
    def manifest_path(self) -> Path:
        """Where the manifest is read from and written to."""
        return self.output_path or self.root_dir / MANIFEST_FILENAME

    @classmethod
    def from_env(cls, **overrides) -> "ScanConfig":
        """
        Build a config from TEXTINDEX_* environment variables.

        Keyword overrides that are not None take precedence over the
        environment. Call dotenv.load_dotenv() first to pick up a .env file.
        """
        values = {}
        env = os.environ

        if env.get(f"{ENV_PREFIX}ROOT"):
            values["root_dir"] = Path(env[f"{ENV_PREFIX}ROOT"])
        if env.get(f"{ENV_PREFIX}OUTPUT"):
            values["output_path"] = Path(env[f"{ENV_PREFIX}OUTPUT"])
        if env.get(f"{ENV_PREFIX}EXTENSIONS"):
            values["allowed_extensions"] = _split_list(env[f"{ENV_PREFIX}EXTENSIONS"])
        if env.get(f"{ENV_PREFIX}MAX_BYTES"):
            values["max_bytes"] = env[f"{ENV_PREFIX}MAX_BYTES"]
        if env.get(f"{ENV_PREFIX}CONCURRENCY"):
            values["concurrency"] = env[f"{ENV_PREFIX}CONCURRENCY"]
        if env.get(f"{ENV_PREFIX}EXCLUDE_DIRS"):
            values["exclude_dirs"] = _split_list(env[f"{ENV_PREFIX}EXCLUDE_DIRS"])
        if env.get(f"{ENV_PREFIX}DECODE_ERRORS"):
            values["decode_errors"] = env[f"{ENV_PREFIX}DECODE_ERRORS"].strip().lower()
        if env.get(f"{ENV_PREFIX}CREATE_ROOT"):
            values["create_root"] = env[f"{ENV_PREFIX}CREATE_ROOT"]

        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def _split_list(raw: str) -> frozenset[str]:
    return frozenset(part.strip() for part in raw.split(",") if part.strip())
