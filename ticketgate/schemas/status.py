"""
Public inventory status. Never carries raw counts.
"""

from pydantic import BaseModel, ConfigDict, Field


class StatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sold_out: bool = Field(serialization_alias="soldOut")
    low_stock: bool = Field(serialization_alias="lowStock")
