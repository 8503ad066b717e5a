"""Database models for leasekeeper.

Models are defined using SQLModel (SQLAlchemy + Pydantic).
"""

from datetime import datetime

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel


class LeaderLease(SQLModel, table=True):
    """Lease row, one per (namespace, name).

    version is replaced with a fresh random token on every write, so a row
    that is deleted and recreated never repeats a version (no ABA on CAS).
    """

    __tablename__ = "leader_leases"

    namespace: str = Field(primary_key=True)
    name: str = Field(primary_key=True)

    holder_identity: str = Field(default="")
    lease_duration_seconds: float
    acquire_time: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True))
    )
    renew_time: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True))
    )
    lease_transitions: int = Field(default=0)
    version: str
