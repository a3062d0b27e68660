"""Content models for parsed descriptions, analyzed works and build metadata"""

from datetime import date, datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator


EMPTY_CELL = ""


class ColorPalette(BaseModel):
    primary:   str = ""
    secondary: str = ""
    tertiary:  str = ""

    def empty(self) -> bool:
        return not (self.primary or self.secondary or self.tertiary)


class WorkMetadata(BaseModel):
    """Decoded description header. Unrecognized keys land in additional_metadata."""
    aliases:         list[str] = []
    started:         str = ""
    finished:        str = ""
    made_with:       list[str] = []
    tags:            list[str] = []
    thumbnail:       str = ""
    title_style:     str = ""
    colors:          ColorPalette = Field(default_factory=ColorPalette)
    page_background: str = ""
    wip:             bool = False
    private:         bool = False
    layout:          Optional[list[Any]] = None     # author-declared grid, see core/layout.py
    additional_metadata: dict[str, Any] = {}

    @model_validator(mode="before")
    @classmethod
    def _collect_additional(cls, data: Any) -> Any:
        """Normalize 'a key' -> 'a_key' and move unknown keys into additional_metadata."""
        if not isinstance(data, dict):
            return data
        data = {str(k).replace(" ", "_"): v for k, v in data.items()}
        known = set(cls.model_fields) - {"additional_metadata"}
        additional = dict(data.pop("additional_metadata", None) or {})
        additional.update({k: v for k, v in data.items() if k not in known})
        fields = {k: v for k, v in data.items() if k in known}
        fields["additional_metadata"] = additional
        return fields

    @field_validator("started", "finished", "thumbnail", "title_style", "page_background", mode="before")
    @classmethod
    def _as_string(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (date, datetime)):
            return value.isoformat()
        return value

    @field_validator("aliases", "made_with", "tags", mode="before")
    @classmethod
    def _as_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value


class MediaAttributes(BaseModel):
    loop:        bool = False
    autoplay:    bool = False
    muted:       bool = False
    playsinline: bool = False
    controls:    bool = True


class Paragraph(BaseModel):
    type:    Literal["paragraph"] = "paragraph"
    id:      str
    anchor:  str = ""
    content: str                    # rendered HTML


class Link(BaseModel):
    type:   Literal["link"] = "link"
    id:     str
    anchor: str = ""
    text:   str                     # rendered inner HTML of the anchor
    title:  str = ""
    url:    str


class MediaEmbedDeclaration(BaseModel):
    """What a media embed says in the description; no filesystem facts."""
    type:       Literal["media"] = "media"
    id:         str
    anchor:     str = ""
    alt:        str = ""
    title:      str = ""
    source:     str                 # verbatim, relative to the description's directory
    attributes: MediaAttributes = Field(default_factory=MediaAttributes)


class Dimensions(BaseModel):
    width:        int = 0
    height:       int = 0
    aspect_ratio: float = 0.0


class Media(BaseModel):
    """A media embed merged with the facts of its analyzed file."""
    type:         Literal["media"] = "media"
    id:           str
    anchor:       str = ""
    alt:          str = ""
    title:        str = ""
    source:       str
    path:         str = ""          # relative to the work directory (scattered folder included)
    content_type: str = ""
    size:         int = 0           # bytes
    dimensions:   Dimensions = Field(default_factory=Dimensions)
    duration:     int = 0           # seconds
    online:       bool = False
    has_sound:    bool = False
    colors:       ColorPalette = Field(default_factory=ColorPalette)
    attributes:   MediaAttributes = Field(default_factory=MediaAttributes)


ContentBlock = Annotated[Union[Paragraph, Media, Link], Field(discriminator="type")]


class LocalizedDescription(BaseModel):
    """One language's share of a parsed description."""
    title:         str = ""
    paragraphs:    list[Paragraph] = []
    media:         list[MediaEmbedDeclaration] = []
    links:         list[Link] = []
    footnotes:     dict[str, str] = {}
    abbreviations: dict[str, str] = {}
    order:         list[str] = []   # block IDs in document order


class ParsedWork(BaseModel):
    """A description before media analysis."""
    metadata:  WorkMetadata = Field(default_factory=WorkMetadata)
    localized: dict[str, LocalizedDescription] = {}


class LocalizedWorkContent(BaseModel):
    layout:    list[list[str]] = []
    blocks:    list[ContentBlock] = []
    title:     str = ""
    footnotes: dict[str, str] = {}


class AnalyzedWork(BaseModel):
    id:        str
    metadata:  WorkMetadata = Field(default_factory=WorkMetadata)
    localized: dict[str, LocalizedWorkContent] = {}

    def find_media(self, path: str) -> Optional[Media]:
        """Return the first analyzed, local media whose path matches."""
        for content in self.localized.values():
            for block in content.blocks:
                if isinstance(block, Media) and not block.online and block.path == path:
                    return block
        return None


class BuildMetadata(BaseModel):
    previous_build_date: Optional[datetime] = None      # None: never built
