"""Stage-1 image manifest, read only for its entrypoint annotations."""

from pydantic import BaseModel, ConfigDict, Field


class Annotation(BaseModel):
    """Name/value annotation pair."""

    name: str
    value: str


class ImageManifest(BaseModel):
    """Subset of an image manifest needed to locate stage-1 entrypoints.

    Unknown fields are kept so the document can be round-tripped.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    ac_kind: str = Field(default="ImageManifest", alias="acKind")
    name: str = Field(default="")
    annotations: list[Annotation] = Field(default_factory=list)

    def get_annotation(self, name: str) -> str | None:
        """Return the value of the first annotation called ``name``."""
        for annotation in self.annotations:
            if annotation.name == name:
                return annotation.value
        return None
