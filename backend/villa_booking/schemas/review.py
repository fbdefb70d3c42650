"""
Pydantic schemas for the reviewer surface.
"""

from pydantic import BaseModel


class RejectRequest(BaseModel):
    reason: str
