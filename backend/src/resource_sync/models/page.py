"""Page result model."""

import math
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field

# Opaque record: field name -> value, with an integer "id" assigned remotely.
Record = Dict[str, Any]


class PageResult(BaseModel):
    """One page of records plus the total count of matching records."""

    model_config = ConfigDict(frozen=True)

    records: List[Record] = Field(default_factory=list)
    total: int = Field(default=0, ge=0)
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1)

    @property
    def total_pages(self) -> int:
        """Number of pages needed to show ``total`` records."""
        if self.total == 0:
            return 0
        return math.ceil(self.total / self.page_size)

    @property
    def ids(self) -> List[int]:
        return [record["id"] for record in self.records]
