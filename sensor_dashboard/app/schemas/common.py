from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from typing import Any, List, Optional


class CamelModel(BaseModel):
    """Base for payloads exchanged with the dashboard, which speaks camelCase"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class RootResponse(BaseModel):
    message: str
    version: str


class ErrorDetail(CamelModel):
    error_type: str
    message: str
    device_address: Optional[int] = None
    function_code: Optional[int] = None
    address: Optional[int] = None
    timestamp: float


class ErrorResponse(CamelModel):
    success: bool = False
    message: str
    detail: ErrorDetail
    errors: Optional[List[Any]] = None
