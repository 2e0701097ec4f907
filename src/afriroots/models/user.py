import enum

from sqlalchemy import Column, Integer, String

from ..database import Base


class Role(str, enum.Enum):
    """Closed set of account roles."""

    VISITOR = "visitor"
    CREATOR = "creator"
    COMMUNITY_MEMBER = "community-member"

    @classmethod
    def _missing_(cls, value):
        # older mobile builds still send "tourist"
        if isinstance(value, str) and value.lower() == "tourist":
            return cls.VISITOR
        return None


class User(Base):
    """SQLAlchemy model for registered accounts."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    phone = Column(String, unique=True, index=True, nullable=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, default=Role.VISITOR.value, nullable=False)
    tribe = Column(String, nullable=True)
    language = Column(String, nullable=True)
