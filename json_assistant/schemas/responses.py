"""
Response schemas for the JSON assistant.

This module defines the Pydantic models returned by the query synthesis loop,
the token budget coordinator and the question-answering pipeline.
"""
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field

from json_assistant.schemas.messages import ChatMessage
from json_assistant.schemas.table import LoadReport

class SynthesisResult(BaseModel):
    """Outcome of a successful query synthesis loop."""
    sql: str = Field(..., description="The statement that executed successfully")
    rows: List[Dict[str, Any]] = Field(default_factory=list, description="Rows returned by the statement")
    results_text: str = Field("", description="Rows rendered as text for the model")
    attempts: int = Field(..., description="Number of attempts used, including the successful one")
    messages: List[ChatMessage] = Field(
        default_factory=list,
        description="The conversation with the model, including error-correction turns"
    )

class CollectedResults(BaseModel):
    """Query results kept for answer synthesis after applying the token budget."""
    results_text: str
    queries: List[str] = Field(default_factory=list)
    first_round_tokens: int = 0
    second_round_run: bool = False
    second_round_kept: bool = False

class AnswerResponse(BaseModel):
    """Response for one question asked about a JSON document."""
    answer: str = Field(..., description="Natural language answer, or a user-facing error message")
    path: Optional[Literal["small", "large"]] = Field(
        None,
        description="Whether the raw document or the analytical store was used"
    )
    is_valid_question: bool = Field(
        True,
        description="False when the model judged the question unrelated to the document"
    )
    queries: List[str] = Field(default_factory=list, description="SQL statements whose results fed the answer")
    results: str = Field("", description="Query results text given to the model")
    load_report: Optional[LoadReport] = None
    error: bool = False
    error_type: Optional[str] = None
