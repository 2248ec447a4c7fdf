"""
Model: KeyValueEntry
Backing table of the SQL local key-value store
"""

from sqlalchemy import Column, DateTime, String, Text

from hymnal.db import Base
from hymnal.utils import now_utc


class KeyValueEntry(Base):
    __tablename__ = "kv_entries"

    key = Column(String(255), primary_key=True)
    value_type = Column(String(16), nullable=False)  # bool, int, double, string, string_list
    value = Column(Text, nullable=False)  # JSON encoded
    updated_at = Column(DateTime, nullable=False, default=now_utc, onupdate=now_utc)
