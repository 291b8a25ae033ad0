"""Partition Schemas — JSON bodies for partition creation and rename."""

from typing import Any

from pydantic import BaseModel


class PartitionWrite(BaseModel):
    """Shared by create and rename: only the title is client-controlled."""
    title: Any = None
