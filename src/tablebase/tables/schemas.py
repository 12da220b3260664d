from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr

Number = Union[StrictInt, StrictFloat]
NonNegative = Union[Annotated[StrictInt, Field(ge=0)], Annotated[StrictFloat, Field(ge=0)]]


class TableDocument(BaseModel):
    """
    Default schema applied to table documents.

    Only the listed fields are checked; any other field is stored as sent.
    """

    model_config = ConfigDict(extra="allow")

    name: StrictStr = Field(..., min_length=1, description="Display name (required)")
    price: Optional[NonNegative] = None
    category: Optional[Literal["electronics", "books", "clothing"]] = None
    tags: Optional[list[StrictStr]] = None
    metadata: Optional[dict[str, Any]] = None
    revisions: Optional[list[Number]] = None


class CountOut(BaseModel):
    count: int


class ModifiedOut(BaseModel):
    modified: int


class DeletedOut(BaseModel):
    deleted: int


class BulkOut(BaseModel):
    inserted: int
    documents: list[dict[str, Any]]


class FolderOut(BaseModel):
    folder: str
