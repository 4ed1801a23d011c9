"""AuthProfile model - reusable login configuration for protected monitors."""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, JSON
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.db_utils import utcnow


class AuthProfile(Base):
    """How to log in and where to find the token in the login response."""

    __tablename__ = "auth_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(String, nullable=True)
    name = Column(String, nullable=False)
    login_url = Column(String, nullable=False)
    login_method = Column(String, default="POST")  # GET, POST
    login_body = Column(JSON, default=dict)  # Flat string map sent as JSON
    token_path = Column(String, nullable=False)  # Dot path, e.g. data.accessToken
    token_type = Column(String, default="Bearer")  # Bearer, Basic, API-Key
    header_name = Column(String, default="Authorization")
    expires_in_seconds = Column(Integer, nullable=True)  # NULL = 1 hour
    skip_ssl_verify = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    monitors = relationship("Monitor", back_populates="auth_profile")
