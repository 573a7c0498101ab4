"""
CRUD core database models
"""

import uuid
import secrets
import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean, DateTime, Float, LargeBinary, String, Text, Uuid, JSON,
    CheckConstraint, Column, ForeignKey, Table
)
from sqlalchemy.orm import relationship

from . import versioning
from .database import Base
from .. import schemas


def utcnow() -> datetime.datetime:
    """
    Return the current time as naive UTC datetime as stored by the models
    """

    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


person_roles = Table(
    "person_roles",
    Base.metadata,
    Column("person_id", Uuid, ForeignKey("people.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Uuid, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True)
)


class Role(Base):
    """
    Model representing a named role which can be assigned to any number of people
    """

    __tablename__ = "roles"

    id: uuid.UUID = Column(Uuid, nullable=False, primary_key=True, default=uuid.uuid4)
    name: str = Column(String(100), nullable=False, unique=True)
    description: Optional[str] = Column(String(500), nullable=True)
    row_version: bytes = Column(LargeBinary(16), nullable=False, default=versioning.generate_initial_version)
    """Concurrency token, renewed by the application on every modification"""
    created_at: datetime.datetime = Column(DateTime, nullable=False, default=utcnow)
    updated_at: Optional[datetime.datetime] = Column(DateTime, nullable=True)

    people: List["Person"] = relationship("Person", secondary=person_roles, back_populates="roles")

    __mapper_args__ = {"version_id_col": row_version, **versioning.MAPPER_ARGS}

    @property
    def schema(self) -> schemas.Role:
        """
        Pydantic schema representation of the database model that can be sent to clients
        """

        return schemas.Role(
            id=self.id,
            name=self.name,
            description=self.description,
            row_version=self.row_version,
            created_at=self.created_at,
            updated_at=self.updated_at
        )

    def __repr__(self) -> str:
        return f"Role(id={self.id}, name={self.name!r})"


class Person(Base):
    """
    Model representing a person with an optional phone number and any number of roles
    """

    __tablename__ = "people"

    id: uuid.UUID = Column(Uuid, nullable=False, primary_key=True, default=uuid.uuid4)
    full_name: str = Column(String(200), nullable=False)
    phone: Optional[str] = Column(String(20), nullable=True)
    row_version: bytes = Column(LargeBinary(16), nullable=False, default=versioning.generate_initial_version)
    """Concurrency token, renewed by the application on every modification (including role changes)"""
    created_at: datetime.datetime = Column(DateTime, nullable=False, default=utcnow)
    updated_at: Optional[datetime.datetime] = Column(DateTime, nullable=True)

    roles: List[Role] = relationship(
        "Role",
        secondary=person_roles,
        back_populates="people",
        order_by=Role.name
    )

    __mapper_args__ = {"version_id_col": row_version, **versioning.MAPPER_ARGS}

    @property
    def schema(self) -> schemas.Person:
        """
        Pydantic schema representation of the database model that can be sent to clients
        """

        return schemas.Person(
            id=self.id,
            full_name=self.full_name,
            phone=self.phone,
            roles=[role.name for role in self.roles],
            row_version=self.row_version,
            created_at=self.created_at,
            updated_at=self.updated_at
        )

    @property
    def schema_with_roles(self) -> schemas.PersonWithRoles:
        return schemas.PersonWithRoles(
            id=self.id,
            full_name=self.full_name,
            phone=self.phone,
            roles=[role.schema for role in self.roles],
            row_version=self.row_version,
            created_at=self.created_at,
            updated_at=self.updated_at
        )

    def __repr__(self) -> str:
        return f"Person(id={self.id}, full_name={self.full_name!r})"


class Wall(Base):
    """
    Model representing a wall of a building with its geometry and energy properties
    """

    __tablename__ = "walls"

    id: uuid.UUID = Column(Uuid, nullable=False, primary_key=True, default=uuid.uuid4)
    name: str = Column(String(200), nullable=False)
    description: Optional[str] = Column(String(1000), nullable=True)
    length: float = Column(Float, nullable=False)
    """Length in feet"""
    height: float = Column(Float, nullable=False)
    """Height in feet"""
    thickness: float = Column(Float, nullable=False)
    """Thickness in inches"""
    assembly_type: str = Column(String(500), nullable=False)
    assembly_details: Optional[str] = Column(String(1000), nullable=True)
    r_value: Optional[float] = Column(Float, nullable=True)
    u_value: Optional[float] = Column(Float, nullable=True)
    material_layers: Optional[str] = Column(Text, nullable=True)
    orientation: Optional[str] = Column(String(50), nullable=True)
    location: Optional[str] = Column(String(50), nullable=True)
    created_at: datetime.datetime = Column(DateTime, nullable=False, default=utcnow)
    updated_at: Optional[datetime.datetime] = Column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("length > 0"),
        CheckConstraint("height > 0"),
        CheckConstraint("thickness > 0"),
    )

    @property
    def schema(self) -> schemas.Wall:
        """
        Pydantic schema representation of the database model that can be sent to clients
        """

        return schemas.Wall(
            id=self.id,
            name=self.name,
            description=self.description,
            length=self.length,
            height=self.height,
            thickness=self.thickness,
            assembly_type=self.assembly_type,
            assembly_details=self.assembly_details,
            r_value=self.r_value,
            u_value=self.u_value,
            material_layers=self.material_layers,
            orientation=self.orientation,
            location=self.location,
            created_at=self.created_at,
            updated_at=self.updated_at
        )

    def __repr__(self) -> str:
        return f"Wall(id={self.id}, name={self.name!r}, assembly_type={self.assembly_type!r})"


class Window(Base):
    """
    Model representing a window of a building with its frame, glazing and energy properties
    """

    __tablename__ = "windows"

    id: uuid.UUID = Column(Uuid, nullable=False, primary_key=True, default=uuid.uuid4)
    name: str = Column(String(200), nullable=False)
    description: Optional[str] = Column(String(1000), nullable=True)
    width: float = Column(Float, nullable=False)
    height: float = Column(Float, nullable=False)
    area: float = Column(Float, nullable=False)
    frame_type: str = Column(String(100), nullable=False)
    frame_details: Optional[str] = Column(String(500), nullable=True)
    glazing_type: str = Column(String(100), nullable=False)
    glazing_details: Optional[str] = Column(String(500), nullable=True)
    u_value: Optional[float] = Column(Float, nullable=True)
    solar_heat_gain_coefficient: Optional[float] = Column(Float, nullable=True)
    visible_transmittance: Optional[float] = Column(Float, nullable=True)
    air_leakage: Optional[float] = Column(Float, nullable=True)
    energy_star_rating: Optional[str] = Column(String(50), nullable=True)
    nfrc_rating: Optional[str] = Column(String(50), nullable=True)
    orientation: Optional[str] = Column(String(50), nullable=True)
    location: Optional[str] = Column(String(100), nullable=True)
    installation_type: Optional[str] = Column(String(50), nullable=True)
    operation_type: Optional[str] = Column(String(100), nullable=True)
    has_screens: Optional[bool] = Column(Boolean, nullable=True)
    has_storm_windows: Optional[bool] = Column(Boolean, nullable=True)
    created_at: datetime.datetime = Column(DateTime, nullable=False, default=utcnow)
    updated_at: Optional[datetime.datetime] = Column(DateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("width > 0"),
        CheckConstraint("height > 0"),
        CheckConstraint("area > 0"),
    )

    @property
    def schema(self) -> schemas.Window:
        """
        Pydantic schema representation of the database model that can be sent to clients
        """

        return schemas.Window(
            id=self.id,
            name=self.name,
            description=self.description,
            width=self.width,
            height=self.height,
            area=self.area,
            frame_type=self.frame_type,
            frame_details=self.frame_details,
            glazing_type=self.glazing_type,
            glazing_details=self.glazing_details,
            u_value=self.u_value,
            solar_heat_gain_coefficient=self.solar_heat_gain_coefficient,
            visible_transmittance=self.visible_transmittance,
            air_leakage=self.air_leakage,
            energy_star_rating=self.energy_star_rating,
            nfrc_rating=self.nfrc_rating,
            orientation=self.orientation,
            location=self.location,
            installation_type=self.installation_type,
            operation_type=self.operation_type,
            has_screens=self.has_screens,
            has_storm_windows=self.has_storm_windows,
            created_at=self.created_at,
            updated_at=self.updated_at
        )

    def __repr__(self) -> str:
        return f"Window(id={self.id}, name={self.name!r}, frame_type={self.frame_type!r})"


class User(Base):
    """
    Model representing a user account which may authenticate against the API
    """

    __tablename__ = "users"

    id: uuid.UUID = Column(Uuid, nullable=False, primary_key=True, default=uuid.uuid4)
    email: str = Column(String(256), nullable=False, unique=True)
    """Lower-cased email address, used as login name"""
    password_hash: str = Column(String(255), nullable=False)
    first_name: Optional[str] = Column(String(100), nullable=True)
    last_name: Optional[str] = Column(String(100), nullable=True)
    roles: List[str] = Column(JSON, nullable=False, default=lambda: ["User"])
    """Authorization roles (e.g. 'User' or 'Admin'), always replaced as a whole"""
    locked: bool = Column(Boolean, nullable=False, default=False)
    row_version: bytes = Column(LargeBinary(16), nullable=False, default=versioning.generate_initial_version)
    created_at: datetime.datetime = Column(DateTime, nullable=False, default=utcnow)
    updated_at: Optional[datetime.datetime] = Column(DateTime, nullable=True)

    refresh_tokens: List["RefreshToken"] = relationship(
        "RefreshToken",
        back_populates="user",
        cascade="all,delete-orphan"
    )
    reset_tokens: List["PasswordResetToken"] = relationship(
        "PasswordResetToken",
        back_populates="user",
        cascade="all,delete-orphan"
    )

    __mapper_args__ = {"version_id_col": row_version, **versioning.MAPPER_ARGS}

    @property
    def schema(self) -> schemas.UserInfo:
        """
        Pydantic schema representation of the database model that can be sent to clients
        """

        return schemas.UserInfo(
            id=self.id,
            email=self.email,
            first_name=self.first_name,
            last_name=self.last_name,
            roles=list(self.roles or []),
            locked=self.locked,
            created_at=self.created_at
        )

    @property
    def active_refresh_tokens(self) -> List["RefreshToken"]:
        return [token for token in self.refresh_tokens if token.active]

    def cleanup_expired_tokens(self) -> int:
        """
        Remove expired refresh tokens of the user and return their number
        """

        expired = [token for token in self.refresh_tokens if token.expired]
        for token in expired:
            self.refresh_tokens.remove(token)
        return len(expired)

    def __repr__(self) -> str:
        return f"User(id={self.id}, email={self.email!r}, roles={self.roles})"


class RefreshToken(Base):
    """
    Model representing a long-lived refresh token of a user
    """

    __tablename__ = "refresh_tokens"

    id: uuid.UUID = Column(Uuid, nullable=False, primary_key=True, default=uuid.uuid4)
    token: str = Column(String(512), nullable=False, unique=True)
    user_id: uuid.UUID = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    expires_at: datetime.datetime = Column(DateTime, nullable=False)
    created_at: datetime.datetime = Column(DateTime, nullable=False, default=utcnow)
    revoked_at: Optional[datetime.datetime] = Column(DateTime, nullable=True)

    user: User = relationship("User", back_populates="refresh_tokens")

    @property
    def expired(self) -> bool:
        return utcnow() >= self.expires_at

    @property
    def revoked(self) -> bool:
        return self.revoked_at is not None

    @property
    def active(self) -> bool:
        return not self.revoked and not self.expired

    def revoke(self):
        if self.revoked_at is None:
            self.revoked_at = utcnow()

    def __repr__(self) -> str:
        return f"RefreshToken(id={self.id}, user_id={self.user_id}, expires_at={self.expires_at})"


class PasswordResetToken(Base):
    """
    Model representing a single-use token to reset the password of a user
    """

    __tablename__ = "password_reset_tokens"

    id: uuid.UUID = Column(Uuid, nullable=False, primary_key=True, default=uuid.uuid4)
    user_id: uuid.UUID = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token: str = Column(String(128), nullable=False, unique=True)
    """URL-safe base64 encoding of 32 random bytes"""
    expires_at: datetime.datetime = Column(DateTime, nullable=False)
    used: bool = Column(Boolean, nullable=False, default=False)
    used_at: Optional[datetime.datetime] = Column(DateTime, nullable=True)
    created_at: datetime.datetime = Column(DateTime, nullable=False, default=utcnow)
    row_version: bytes = Column(LargeBinary(16), nullable=False, default=versioning.generate_initial_version)

    user: User = relationship("User", back_populates="reset_tokens")

    __mapper_args__ = {"version_id_col": row_version, **versioning.MAPPER_ARGS}

    @classmethod
    def issue(cls, user: User, lifetime: datetime.timedelta = datetime.timedelta(hours=1)) -> "PasswordResetToken":
        return cls(
            user=user,
            token=secrets.token_urlsafe(32),
            expires_at=utcnow() + lifetime,
            used=False,
            row_version=versioning.generate_initial_version()
        )

    @property
    def expired(self) -> bool:
        return utcnow() >= self.expires_at

    @property
    def valid(self) -> bool:
        return not self.used and not self.expired

    def validate(self, candidate: str) -> bool:
        """
        Check the candidate against the token in constant time, requiring a valid token
        """

        if not candidate or not self.valid:
            return False
        return secrets.compare_digest(self.token.encode("ascii"), candidate.encode("ascii", "replace"))

    def mark_as_used(self):
        if self.used:
            raise ValueError("Password reset token has already been used")
        if self.expired:
            raise ValueError("Password reset token has expired")
        self.used = True
        self.used_at = utcnow()
        versioning.stamp(self)

    def expire(self):
        if not self.used and not self.expired:
            self.expires_at = utcnow()
            versioning.stamp(self)

    @property
    def schema(self) -> schemas.ResetTokenValidation:
        """
        Pydantic schema representation of the database model that can be sent to clients
        """

        return schemas.ResetTokenValidation(
            is_valid=self.valid,
            is_expired=self.expired,
            is_used=self.used,
            expires_at=self.expires_at
        )

    def __repr__(self) -> str:
        return f"PasswordResetToken(id={self.id}, user_id={self.user_id}, used={self.used})"


# Models that are never sent to clients
INTERNAL_MODELS = (RefreshToken,)

# Asserting that every other database model has a `schema` attribute
assert not any(
    True for mapper in Base.registry.mappers
    if mapper.class_ not in INTERNAL_MODELS and not hasattr(mapper.class_, "schema")
)
