from typing import Generic, Optional, TypeVar

from pydantic import BaseModel


DataT = TypeVar("DataT")


class ApiResponse(BaseModel, Generic[DataT]):
    success: bool = True
    message: Optional[str] = None
    data: Optional[DataT] = None


def ok(data=None, message: Optional[str] = None) -> dict:
    return {"success": True, "message": message, "data": data}
