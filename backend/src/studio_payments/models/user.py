"""User model holding role flags and the Stripe customer reference."""
from sqlalchemy import Boolean, Column, String
from sqlalchemy import Enum as SQLEnum
import enum

from studio_payments.models.base import Base, enum_values


class UserRole(enum.Enum):
    """Portal roles."""

    ADMIN = "admin"
    EDITOR = "editor"
    CLIENT = "client"


class User(Base):
    """
    Portal user.

    The id is the identity provider's uid. ``stripe_customer_id`` is created
    lazily on the first authenticated charge and never removed.
    """

    __tablename__ = "users"

    email = Column(String, nullable=False, index=True)
    role = Column(
        SQLEnum(UserRole, name="userrole", values_callable=enum_values),
        nullable=False,
        default=UserRole.CLIENT,
        index=True,
    )
    is_super_admin = Column(Boolean, nullable=False, default=False)
    stripe_customer_id = Column(String, nullable=True, unique=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)

    @property
    def is_admin(self) -> bool:
        """Admins and super admins may view the ledger."""
        return self.is_super_admin or self.role == UserRole.ADMIN

    def __repr__(self) -> str:
        """String representation."""
        return f"<User(id={self.id}, email={self.email}, role={self.role.value})>"
