"""Customer model and the customer enums."""

import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import Column, Date, DateTime, Enum as SAEnum, Integer, String, Text, Uuid

from crm.persistence.database import Base


class CustomerStatus(str, Enum):
    """Position of a customer in the certification process."""

    NEW = "NEW"
    NOTIFIED = "NOTIFIED"
    ABORTED = "ABORTED"
    SUBMITTED = "SUBMITTED"
    CERTIFIED = "CERTIFIED"
    CERTIFIED_ELSEWHERE = "CERTIFIED_ELSEWHERE"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()

    @classmethod
    def parse(cls, value) -> "CustomerStatus | None":
        """Return the member for a name or display name, or None."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        key = value.strip().upper().replace(" ", "_")
        try:
            return cls(key)
        except ValueError:
            return None


class CustomerType(str, Enum):
    """New registration vs. renewal under review."""

    NEW_CUSTOMER = "NEW_CUSTOMER"
    RENEW_CUSTOMER = "RENEW_CUSTOMER"


class CertificateType(str, Enum):
    """Certificate codes issued to customers."""

    # Cranes and machinery
    Q1_COMMAND = "Q1_COMMAND"
    Q2_MOBILE_CRANE = "Q2_MOBILE_CRANE"
    Q2_BRIDGE_CRANE = "Q2_BRIDGE_CRANE"
    Q2_GANTRY_CRANE = "Q2_GANTRY_CRANE"
    Q2_TOWER_CRANE = "Q2_TOWER_CRANE"
    Q2_HOIST = "Q2_HOIST"

    # Forklifts and industrial vehicles
    N1_FORKLIFT = "N1_FORKLIFT"
    N2_SIGHTSEEING_CAR = "N2_SIGHTSEEING_CAR"

    # Boilers and pressure vessels
    G1_INDUSTRIAL_BOILER = "G1_INDUSTRIAL_BOILER"
    G3_BOILER_WATER_TREATMENT = "G3_BOILER_WATER_TREATMENT"
    R1_QUICK_OPEN_PRESSURE_VESSEL = "R1_QUICK_OPEN_PRESSURE_VESSEL"
    R2_MOBILE_PRESSURE_VESSEL = "R2_MOBILE_PRESSURE_VESSEL"
    P_GAS_FILLING = "P_GAS_FILLING"

    A_SPECIAL_EQUIPMENT_SAFETY = "A_SPECIAL_EQUIPMENT_SAFETY"
    T_ELEVATOR_OPERATION = "T_ELEVATOR_OPERATION"

    # Construction trades
    CONSTRUCTION_ELECTRICIAN = "CONSTRUCTION_ELECTRICIAN"
    CONSTRUCTION_WELDER = "CONSTRUCTION_WELDER"
    CONSTRUCTION_SCAFFOLDER = "CONSTRUCTION_SCAFFOLDER"
    CONSTRUCTION_LIFTING_EQUIPMENT = "CONSTRUCTION_LIFTING_EQUIPMENT"
    CONSTRUCTION_SIGNALMAN = "CONSTRUCTION_SIGNALMAN"
    CONSTRUCTION_MATERIAL_HOIST_DRIVER = "CONSTRUCTION_MATERIAL_HOIST_DRIVER"
    CONSTRUCTION_GONDOLA_INSTALLER = "CONSTRUCTION_GONDOLA_INSTALLER"

    # Electrical work
    LOW_VOLTAGE_ELECTRICIAN = "LOW_VOLTAGE_ELECTRICIAN"
    WELDING_THERMAL_CUTTING = "WELDING_THERMAL_CUTTING"
    HIGH_VOLTAGE_ELECTRICIAN = "HIGH_VOLTAGE_ELECTRICIAN"

    # Work at height
    HIGH_ALTITUDE_INSTALLATION = "HIGH_ALTITUDE_INSTALLATION"
    HIGH_ALTITUDE_SCAFFOLDING = "HIGH_ALTITUDE_SCAFFOLDING"

    REFRIGERATION_AIR_CONDITIONING = "REFRIGERATION_AIR_CONDITIONING"

    # Mining, petroleum and chemical safety
    COAL_MINE_SAFETY = "COAL_MINE_SAFETY"
    METAL_NONMETAL_MINE_SAFETY = "METAL_NONMETAL_MINE_SAFETY"
    OIL_GAS_SAFETY = "OIL_GAS_SAFETY"
    HAZARDOUS_CHEMICALS_SAFETY = "HAZARDOUS_CHEMICALS_SAFETY"
    METALLURGY_SAFETY = "METALLURGY_SAFETY"
    FIREWORKS_SAFETY = "FIREWORKS_SAFETY"

    OTHERS = "OTHERS"


class EducationLevel(str, Enum):
    """Highest completed education."""

    ELEMENTARY = "ELEMENTARY"
    MIDDLE_SCHOOL = "MIDDLE_SCHOOL"
    HIGH_SCHOOL = "HIGH_SCHOOL"
    ASSOCIATE = "ASSOCIATE"
    BACHELOR = "BACHELOR"
    MASTER = "MASTER"
    DOCTORATE = "DOCTORATE"
    PROFESSIONAL = "PROFESSIONAL"
    CERTIFICATE = "CERTIFICATE"
    OTHER = "OTHER"


class Customer(Base):
    """Customer record owned by the sales account that created it.

    ``current_status`` is only ever changed by
    ``CustomerService.transition_status``; generic updates refuse it.
    Soft-deleted rows keep their data and carry ``deleted_at``.
    """

    __tablename__ = "customers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    phone = Column(String(20), unique=True, nullable=False, index=True)

    certificate_issuer = Column(String(255), nullable=True)
    business_requirements = Column(Text, nullable=True)
    certificate_type = Column(
        SAEnum(CertificateType, name="certificate_type", native_enum=False, length=64),
        nullable=True,
    )

    age = Column(Integer, nullable=True)
    education = Column(
        SAEnum(EducationLevel, name="education_level", native_enum=False, length=32),
        nullable=True,
    )
    gender = Column(String(20), nullable=True)
    address = Column(String(500), nullable=True)
    id_card = Column(String(50), nullable=True)

    customer_agent = Column(String(255), nullable=True)
    customer_type = Column(
        SAEnum(CustomerType, name="customer_type", native_enum=False, length=32),
        nullable=False,
        default=CustomerType.NEW_CUSTOMER,
    )
    sales_phone = Column(String(20), nullable=True, index=True)
    current_status = Column(
        SAEnum(
            CustomerStatus,
            name="customer_status",
            native_enum=False,
            create_constraint=True,
            length=32,
        ),
        nullable=False,
        default=CustomerStatus.NEW,
        index=True,
    )
    certified_at = Column(Date, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    deleted_at = Column(DateTime, nullable=True, index=True)
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self) -> None:
        self.deleted_at = datetime.utcnow()

    def restore(self) -> None:
        self.deleted_at = None

    def __repr__(self) -> str:
        return (
            f"<Customer(id={self.id}, phone={self.phone}, "
            f"status={self.current_status}, deleted_at={self.deleted_at})>"
        )
