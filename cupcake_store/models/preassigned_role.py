from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, false, func

from cupcake_store.core.database import Base
from cupcake_store.core.roles import Role


class PreassignedRole(Base):
    __tablename__ = "preassigned_roles"

    id = Column(Integer, primary_key=True)
    email = Column(String, nullable=False)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    phone_number = Column(String(30), nullable=True)
    role = Column(String(20), nullable=False, default=Role.CLIENT.value)
    consumed = Column(Boolean, nullable=False, default=False, server_default=false())
    created_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


# email único apenas entre as atribuições ainda não consumidas
Index(
    "uq_preassigned_roles_email_unconsumed",
    PreassignedRole.email,
    unique=True,
    postgresql_where=PreassignedRole.consumed.is_(False),
    sqlite_where=PreassignedRole.consumed.is_(False),
)
