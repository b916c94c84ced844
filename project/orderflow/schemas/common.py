# orderflow/schemas/common.py

from typing import Generic, Optional, TypeVar
from pydantic import BaseModel

T = TypeVar("T")

class Envelope(BaseModel, Generic[T]):
    """Uniform response body: {success, message?, data?}"""
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None
