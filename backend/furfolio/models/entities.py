from __future__ import annotations
import uuid
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import JSON, Boolean, Date, DateTime, ForeignKey, Integer, String, Uuid, text
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

Base = declarative_base()


class Entity(Base):
    """Shared columns. Ids are assigned on construction so integrity checks can run on unsaved objects."""
    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tags: Mapped[List[str]] = mapped_column(JSON, default=list)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), server_onupdate=text('CURRENT_TIMESTAMP'))

    def __init__(self, **kwargs):
        kwargs.setdefault('id', uuid.uuid4())
        kwargs.setdefault('tags', [])
        super().__init__(**kwargs)

    def __repr__(self):
        return f"<{type(self).__name__} {self.id}>"


class DogOwner(Entity):
    __tablename__ = 'dog_owners'
    name: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    contact_info: Mapped[Optional[str]] = mapped_column(String(128))
    address: Mapped[Optional[str]] = mapped_column(String(255))

    dogs = relationship('Dog', back_populates='owner')
    appointments = relationship('Appointment', back_populates='owner')
    charges = relationship('Charge', back_populates='owner')


class Dog(Entity):
    __tablename__ = 'dogs'
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    breed: Mapped[Optional[str]] = mapped_column(String(64))
    birthdate: Mapped[Optional[date]] = mapped_column(Date)
    owner_id: Mapped[Optional[uuid.UUID]] = mapped_column(ForeignKey('dog_owners.id', ondelete='SET NULL'), nullable=True, index=True)

    owner = relationship('DogOwner', back_populates='dogs')
    appointments = relationship('Appointment', back_populates='dog')
    charges = relationship('Charge', back_populates='dog')
    vaccination_records = relationship('VaccinationRecord', back_populates='dog')


class Appointment(Entity):
    __tablename__ = 'appointments'
    SERVICE_BASIC = 'basic'
    SERVICE_FULL = 'full'
    SERVICE_CUSTOM = 'custom'
    ALL_SERVICES = (SERVICE_BASIC, SERVICE_FULL, SERVICE_CUSTOM)

    date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), index=True)
    service_type: Mapped[str] = mapped_column(String(32), nullable=False, default=SERVICE_BASIC)
    notes: Mapped[Optional[str]] = mapped_column(String(512))
    owner_id: Mapped[Optional[uuid.UUID]] = mapped_column(ForeignKey('dog_owners.id', ondelete='SET NULL'), nullable=True, index=True)
    dog_id: Mapped[Optional[uuid.UUID]] = mapped_column(ForeignKey('dogs.id', ondelete='SET NULL'), nullable=True, index=True)

    owner = relationship('DogOwner', back_populates='appointments')
    dog = relationship('Dog', back_populates='appointments')
    charges = relationship('Charge', back_populates='appointment')

    @property
    def name(self) -> str:
        return f"{self.service_type} appointment"


class Charge(Entity):
    __tablename__ = 'charges'
    date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[Optional[str]] = mapped_column(String(512))
    owner_id: Mapped[Optional[uuid.UUID]] = mapped_column(ForeignKey('dog_owners.id', ondelete='SET NULL'), nullable=True, index=True)
    dog_id: Mapped[Optional[uuid.UUID]] = mapped_column(ForeignKey('dogs.id', ondelete='SET NULL'), nullable=True, index=True)
    appointment_id: Mapped[Optional[uuid.UUID]] = mapped_column(ForeignKey('appointments.id', ondelete='SET NULL'), nullable=True, index=True)

    owner = relationship('DogOwner', back_populates='charges')
    dog = relationship('Dog', back_populates='charges')
    appointment = relationship('Appointment', back_populates='charges')

    @property
    def name(self) -> str:
        return f"charge of {self.amount_cents} cents"


class StaffMember(Entity):
    __tablename__ = 'staff_members'
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    role: Mapped[str] = mapped_column(String(32), nullable=False, default='groomer')
    email: Mapped[Optional[str]] = mapped_column(String(128))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class User(Entity):
    __tablename__ = 'users'
    username: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(128))
    role: Mapped[str] = mapped_column(String(32), nullable=False, default='unknown')
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    @property
    def name(self) -> str:
        return self.username


class Task(Entity):
    __tablename__ = 'tasks'
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=False)
    due_date: Mapped[Optional[date]] = mapped_column(Date)

    @property
    def name(self) -> str:
        return self.title


class VaccinationRecord(Entity):
    __tablename__ = 'vaccination_records'
    vaccine_type: Mapped[str] = mapped_column(String(64), nullable=False)
    date_administered: Mapped[Optional[date]] = mapped_column(Date)
    expiration_date: Mapped[Optional[date]] = mapped_column(Date)
    dog_id: Mapped[Optional[uuid.UUID]] = mapped_column(ForeignKey('dogs.id', ondelete='CASCADE'), nullable=True, index=True)

    dog = relationship('Dog', back_populates='vaccination_records')

    @property
    def name(self) -> str:
        return self.vaccine_type
