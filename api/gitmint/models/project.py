"""Project record: a GitHub repository paired with a launched token."""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Project(BaseModel):
    """Project row as stored by the persistence layer.

    Records arrive loosely typed, so unknown columns are kept (``extra="allow"``)
    and flow back out unchanged in trending responses. ``created_at`` is kept
    as given; the trending scorer is the one place that parses it.
    """

    model_config = ConfigDict(extra="allow")

    id: str = Field(min_length=1)
    created_at: Optional[Union[datetime, str]] = None
    updated_at: Optional[Union[datetime, str]] = None

    token_name: Optional[str] = None
    token_symbol: Optional[str] = None
    token_description: Optional[str] = None
    token_image_url: Optional[str] = None

    repo_name: Optional[str] = None
    repo_url: Optional[str] = None
    repo_description: Optional[str] = None
    repo_language: Optional[str] = None
    repo_stars: Optional[int] = None
    repo_forks: Optional[int] = None
    repo_verified: bool = False

    usd_market_cap: Optional[float] = None
    transaction_count: Optional[int] = None
