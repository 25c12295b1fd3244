"""Configuration models using Pydantic for validation."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_EMBEDDING_MODEL = "all-MiniLM-L6-v2"

DEFAULT_EXTENSIONS = [
    ".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs",
    ".py", ".pyw",
    ".go",
    ".rs",
    ".java", ".kt", ".kts",
    ".c", ".cpp", ".h", ".hpp",
    ".cs",
    ".rb",
    ".php",
    ".swift",
    ".md", ".mdx", ".txt", ".rst",
    ".json", ".yaml", ".yml", ".toml",
    ".sh", ".bash", ".zsh",
    ".sql",
    ".html", ".css", ".scss", ".sass", ".less",
]

DEFAULT_SKIP_DIRS = [
    "node_modules",
    ".git",
    "dist",
    "build",
    ".next",
    "__pycache__",
    "venv",
    ".venv",
    "target",
    "vendor",
]


class EmbeddingSettings(BaseModel):
    """Embedding model and chunking configuration."""

    model_name: str = Field(
        default=DEFAULT_EMBEDDING_MODEL, description="Sentence transformer model for embeddings"
    )
    chunk_size: int = Field(default=1000, ge=100, description="Target chunk size in characters")
    chunk_overlap: int = Field(
        default=100, ge=0, description="Characters shared between consecutive chunks"
    )
    min_chunk_length: int = Field(
        default=50, ge=0, description="Chunks of this length or shorter are discarded"
    )

    @model_validator(mode="after")
    def overlap_less_than_size(self) -> "EmbeddingSettings":
        """Ensure chunk overlap is smaller than the chunk size."""
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be less than chunk_size")
        return self


class ScanSettings(BaseModel):
    """Settings for which files are picked up by a directory scan."""

    extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXTENSIONS),
        description="File extensions to index",
    )
    skip_dirs: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SKIP_DIRS),
        description="Directory names never descended into",
    )
    max_file_size_mb: int = Field(default=5, ge=1, description="Maximum file size to index (in MB)")

    @field_validator("extensions")
    @classmethod
    def normalize_extensions(cls, v: list[str]) -> list[str]:
        """Lowercase extensions and ensure a leading dot."""
        normalized = []
        for ext in v:
            ext = ext.strip().lower()
            if not ext:
                continue
            normalized.append(ext if ext.startswith(".") else f".{ext}")
        return normalized


class SearchSettings(BaseModel):
    """Default search behaviour."""

    limit: int = Field(default=10, ge=1, description="Maximum number of results")
    min_score: float = Field(default=0.0, ge=0.0, le=1.0, description="Minimum similarity score")
    max_tokens: int | None = Field(
        default=None, ge=1, description="Token budget for returned snippets"
    )


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_dir: Path = Field(
        default=Path.home() / ".projectrag" / "logs", description="Directory for log files"
    )
    max_bytes: int = Field(
        default=10 * 1024 * 1024, ge=1024, description="Max log file size before rotation (bytes)"
    )
    backup_count: int = Field(default=5, ge=1, description="Number of rotated log files to keep")
    console_enabled: bool = Field(default=True, description="Enable console logging")
    file_enabled: bool = Field(default=False, description="Enable file logging")

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper


class ProjectSettings(BaseModel):
    """A project whose files are indexed into its own index."""

    name: str = Field(description="Project name used to scope searches")
    path: Path = Field(description="Project root directory")
    index_path: Path | None = Field(
        default=None, description="Index file (defaults to <path>/.projectrag/index.json)"
    )
    semantic_search_enabled: bool = Field(default=True, description="Enable semantic search")
    model_name: str | None = Field(
        default=None, description="Embedding model override for this project"
    )

    def get_index_path(self) -> Path:
        """Get the index file location for this project."""
        if self.index_path is not None:
            return self.index_path
        return self.path / ".projectrag" / "index.json"


class ProjectRAGConfig(BaseModel):
    """Main configuration for projectrag."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    index_path: Path = Field(
        default=Path.home() / ".projectrag" / "index.json",
        description="Default index file used when no project is selected",
    )

    embedding: EmbeddingSettings = Field(
        default_factory=EmbeddingSettings, description="Embedding settings"
    )
    scan: ScanSettings = Field(default_factory=ScanSettings, description="Directory scan settings")
    search: SearchSettings = Field(default_factory=SearchSettings, description="Search settings")
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings, description="Logging settings"
    )

    projects: list[ProjectSettings] = Field(
        default_factory=list, description="Projects with their own indexes"
    )

    @field_validator("projects")
    @classmethod
    def unique_project_names(cls, v: list[ProjectSettings]) -> list[ProjectSettings]:
        """Ensure project names are unique."""
        names = [p.name for p in v]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f"Duplicate project names: {sorted(duplicates)}")
        return v

    def get_project(self, name: str) -> ProjectSettings | None:
        """Find a project by name."""
        for project in self.projects:
            if project.name == name:
                return project
        return None

    def model_for(self, project: ProjectSettings | None) -> str:
        """Get the embedding model a project's index should be built with."""
        if project is not None and project.model_name:
            return project.model_name
        return self.embedding.model_name
