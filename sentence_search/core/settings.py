"""Base settings configuration.

(c) Mike Casale 2025.
Licensed under the MIT License.
See LICENSE file for details.
"""

from __future__ import annotations as _annotations

# =============================================================================
# Section 1: Imports
# =============================================================================
# Standard library (alphabetical)
from pathlib import Path
from typing import Final

# Third-party (alphabetical)
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Local imports (core first, then alphabetical)
from .types import ProviderName

# =============================================================================
# Section 2: Module Exports
# =============================================================================
__all__ = ("SearchSettings", "DEFAULT_DATA_DIR", "DEFAULT_EMBEDDING_MODEL")

# =============================================================================
# Section 3: Constants
# =============================================================================
DEFAULT_DATA_DIR: Final[Path] = Path("~/.sentence_search").expanduser()
DEFAULT_EMBEDDING_MODEL: Final[str] = "openai:text-embedding-3-small"


# =============================================================================
# Section 11: Classes
# =============================================================================
class SearchSettings(BaseSettings):
    """Runtime settings, read from ``SENTENCE_SEARCH_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="SENTENCE_SEARCH_",
        env_file=".env",
        extra="ignore",
        validate_default=True,
    )

    environment: str = "development"
    snapshot_path: Path = DEFAULT_DATA_DIR / "vector_db.bin"
    corpus_paths: list[Path] = Field(default_factory=list)
    text_field: str = "page_content"

    embedding_provider: ProviderName = "hash"
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    hash_dimension: int = Field(default=384, gt=0)

    build_concurrency: int = Field(default=8, gt=0)
    default_top_n: int = Field(default=5, ge=0)
    validate_snapshot_dimension: bool = True

    @field_validator("snapshot_path", mode="after")
    @classmethod
    def _expand_snapshot_path(cls, value: Path) -> Path:
        return value.expanduser()
