"""
RefreshToken model: one row per live refresh token.
Fields:
- id (primary key)
- user_id (String(36)) - FK to users.id
- token (unique opaque string, the lookup key)
- expires_at
"""
from sqlalchemy import Column, String, DateTime, ForeignKey
from models.base_model import BaseModel, Base, as_utc, utcnow


class RefreshToken(BaseModel, Base):
    __tablename__ = "refresh_tokens"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token = Column(String(128), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    def is_expired(self, now=None) -> bool:
        return as_utc(self.expires_at) <= (now or utcnow())

    def __repr__(self):
        return f"<RefreshToken user={self.user_id} expires_at={self.expires_at}>"
