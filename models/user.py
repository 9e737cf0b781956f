import enum

from models.base_model import Base, BaseModel
from sqlalchemy import Column, String


class Role(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"


class User(BaseModel, Base):
    __tablename__ = "users"
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(16), nullable=False, default=Role.USER.value)

    def __repr__(self):
        return f"<User {self.email} role={self.role}>"
