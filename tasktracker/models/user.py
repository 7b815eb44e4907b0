from sqlalchemy import Column, Integer, String
from tasktracker.database import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)

    def __repr__(self):
        return f"<User {self.id}: {self.email}>"
