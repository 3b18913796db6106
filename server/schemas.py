from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Product(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str
    rating: float
    review_count: int = Field(alias="reviewCount")
    image_url: str = Field(alias="imageUrl")
    product_url: str = Field(alias="productUrl")
    position: int
    debug: Optional[Dict[str, Any]] = None


class ScrapeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    keyword: str
    results_count: int = Field(alias="resultsCount")
    execution_time: str = Field(alias="executionTime")
    data: List[Product]
    diagnostics: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    category: Optional[str] = None
    details: Optional[str] = None
    example: Optional[str] = None


class NotFoundResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    error: str = "Endpoint not found"
    available_endpoints: List[str] = Field(alias="availableEndpoints")


class InfoResponse(BaseModel):
    message: str
    version: str
    endpoints: Dict[str, str]


def dump(model: BaseModel) -> Dict[str, Any]:
    return model.model_dump(by_alias=True, exclude_none=True)
