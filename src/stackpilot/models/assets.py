"""Asset manifest models.

The engine does not build or upload assets itself. It only assembles the
manifest entries handed to the external asset publisher: the caller's own
assets plus, for oversized templates, the staged template file.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class FileAssetSource(BaseModel):
    """Where the bytes of a file asset come from."""

    model_config = ConfigDict(extra="forbid")

    path: str | None = Field(default=None, description="Path on local disk")
    content: bytes | None = Field(default=None, description="In-memory content")

    @model_validator(mode="after")
    def validate_one_source(self) -> FileAssetSource:
        """Exactly one of path or content must be set."""
        if (self.path is None) == (self.content is None):
            raise ValueError("Exactly one of 'path' or 'content' must be set")
        return self


class FileAssetDestination(BaseModel):
    """Object storage coordinates a file asset is published to."""

    model_config = ConfigDict(extra="forbid")

    bucket_name: str = Field(..., description="Destination bucket")
    object_key: str = Field(..., description="Destination object key")


class FileAsset(BaseModel):
    """A single file asset entry."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., description="Asset identifier (content hash)")
    source: FileAssetSource
    destination: FileAssetDestination


class AssetManifest(BaseModel):
    """Collection of file assets to publish for one stack.

    Attributes:
        directory: Directory relative source paths are resolved against
        files: File assets keyed by asset id
    """

    model_config = ConfigDict(extra="forbid")

    directory: str | None = Field(default=None, description="Assembly directory")
    files: dict[str, FileAsset] = Field(default_factory=dict)

    def add_file_asset(
        self,
        asset_id: str,
        source: FileAssetSource,
        destination: FileAssetDestination,
    ) -> None:
        """Register a file asset (re-registering the same id replaces it)."""
        self.files[asset_id] = FileAsset(
            id=asset_id, source=source, destination=destination
        )

    def filtered(self, asset_ids: list[str]) -> AssetManifest:
        """Return a manifest containing only the given asset ids."""
        wanted = set(asset_ids)
        return AssetManifest(
            directory=self.directory,
            files={k: v for k, v in self.files.items() if k in wanted},
        )

    def copy_for_deploy(self) -> AssetManifest:
        """Return an independent copy the engine may add entries to."""
        return self.model_copy(deep=True)

    @property
    def is_empty(self) -> bool:
        """Whether the manifest has no entries."""
        return not self.files
