"""
Schemas for the table a JSON document is loaded into.

This module defines the Pydantic models for inferred columns and load reports.
"""
from typing import List, Literal
from pydantic import BaseModel, Field

ColumnType = Literal["text", "double", "integer", "boolean"]

class InferredColumn(BaseModel):
    """A column derived from one field of the representative record."""
    name: str = Field(..., description="Field name, used as the column identifier")
    column_type: ColumnType = Field(..., description="Semantic type inferred from the field value")

class LoadReport(BaseModel):
    """Outcome of loading the records of a JSON document."""
    inserted: int = Field(0, description="Number of records inserted into the table")
    skipped: int = Field(0, description="Number of records skipped because they could not be loaded")
    errors: List[str] = Field(
        default_factory=list,
        description="One message per skipped record"
    )
