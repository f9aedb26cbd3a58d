from sqlalchemy import Column, DateTime, String, func
from sqlalchemy.orm import relationship

from cupcake_store.core.database import Base
from cupcake_store.core.roles import Role


class User(Base):
    __tablename__ = "users"

    # "sub" do provedor de identidade (string opaca)
    id = Column(String, primary_key=True)
    email = Column(String, unique=True, index=True, nullable=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    phone_number = Column(String(30), nullable=True)
    address = Column(String, nullable=True)
    profile_image_url = Column(String, nullable=True)
    role = Column(String(20), nullable=False, default=Role.CLIENT.value)  # client | employee | admin
    consent_accepted_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    orders = relationship("Order", back_populates="user")
    reviews = relationship("Review", back_populates="user")

    @property
    def display_name(self) -> str | None:
        if not self.first_name:
            return None
        if self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.first_name
