from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True)
class ProductRecord:
    title: str
    rating: float
    review_count: int
    image_url: str
    product_url: str
    position: int
    debug: Optional[Mapping[str, Any]] = field(default=None, hash=False)

    def __post_init__(self):
        if self.debug is not None and not isinstance(self.debug, MappingProxyType):
            object.__setattr__(self, "debug", MappingProxyType(dict(self.debug)))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the camelCase keys used by the JSON API."""
        data = {
            "title": self.title,
            "rating": self.rating,
            "reviewCount": self.review_count,
            "imageUrl": self.image_url,
            "productUrl": self.product_url,
            "position": self.position,
        }
        if self.debug is not None:
            data["debug"] = dict(self.debug)
        return data
