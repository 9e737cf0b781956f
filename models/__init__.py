"""Persistence layer: SQLAlchemy models, storage and repositories."""
from models.base_model import Base
from models.user import Role, User
from models.refresh_token import RefreshToken
