from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

CONFIG_FILENAME = "wallog.yml"


class RenderOptions(BaseModel):
    """Optional extensions layered on top of the base markdown dialect."""

    embed_youtube: bool = Field(
        default=False,
        description="Render YouTube links as responsive iframe embeds instead of anchors.",
    )
    embed_spreadsheets: bool = Field(
        default=False,
        description="Render Google Sheets links as responsive iframe embeds instead of anchors.",
    )
    drive_file_url: str | None = Field(
        default=None,
        description=(
            "Base URL used to expand the '<img=FILE_ID>' shortcode "
            "(e.g. 'https://example.com/api/drive/file'). Unset disables the shortcode."
        ),
    )
    allow_raw_html: bool = Field(
        default=False,
        description="Emit lines that consist of a single complete HTML element unchanged.",
    )

    @field_validator("drive_file_url", mode="before")
    def _normalize_url(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = str(value).strip().rstrip("/")
        return text or None


class PreviewConfig(BaseModel):
    """Defaults for the live preview server."""

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000, ge=0, le=65535)


class Config(BaseModel):
    project_name: str = Field(default="wallog")
    content_dir: Path = Field(default=Path("posts"))
    output_dir: Path = Field(default=Path("site"))
    description_length: int = Field(
        default=100,
        ge=1,
        description="Maximum number of characters kept in a post description.",
    )
    renderer: RenderOptions = Field(default_factory=RenderOptions)
    preview: PreviewConfig = Field(default_factory=PreviewConfig)

    @field_validator("content_dir", "output_dir", mode="before")
    def _ensure_path(cls, value: Any) -> Path:
        return Path(value)

    @property
    def posts_output_dir(self) -> Path:
        return self.output_dir / "posts"


def load_config(path: str | Path) -> Config:
    """Load configuration and resolve relative paths based on the config location.

    The ``path`` argument may point to a file (e.g., ``/blog/wallog.yml``) or a
    directory containing that file. All relative paths inside the configuration
    are interpreted relative to the directory holding the config file.
    """
    candidate = Path(path)
    data: dict[str, Any] = {}
    base_dir: Path
    if candidate.is_dir():
        # A project directory without a config file falls back to defaults.
        config_file = candidate / CONFIG_FILENAME
        if config_file.exists():
            data = _read_yaml(config_file)
        base_dir = candidate.resolve()
    else:
        if not candidate.exists():
            raise FileNotFoundError(candidate)
        data = _read_yaml(candidate)
        base_dir = candidate.parent.resolve()

    cfg = Config(**data)

    def _abs(value: Path) -> Path:
        return value if value.is_absolute() else (base_dir / value).resolve()

    cfg.content_dir = _abs(cfg.content_dir)
    cfg.output_dir = _abs(cfg.output_dir)
    return cfg


def _read_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must define a mapping at the top level.")
    return data
