"""
Schemas for conversation messages exchanged with the language model.
"""
from typing import Literal
from pydantic import BaseModel

class ChatMessage(BaseModel):
    """A single role-tagged message in a model conversation."""
    role: Literal["system", "user", "assistant"]
    content: str
