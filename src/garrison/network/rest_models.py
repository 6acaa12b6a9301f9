"""Pydantic request bodies for the REST API.

The city ID comes from the URL path, so these carry only the payload;
the endpoints turn them into the matching typed actions.
"""

from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, Field


class FoundCityRequest(BaseModel):
    name: str = Field(min_length=1, max_length=40)
    god: Optional[str] = None


class TrainRequest(BaseModel):
    unit_iid: str
    amount: int = Field(gt=0)


class HealRequest(BaseModel):
    units: Dict[str, int]


class DismissRequest(BaseModel):
    units: Dict[str, int]
