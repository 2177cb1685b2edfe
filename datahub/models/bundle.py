from sqlalchemy import Column, Integer, String, Numeric, Boolean, Enum, Index
from datahub.core.database import Base
from datahub.models.base import TimestampMixin, enum_values
from datahub.models.transaction import Network


class Bundle(Base, TimestampMixin):
    __tablename__ = "bundles"

    id = Column(Integer, primary_key=True, index=True)
    network = Column(Enum(Network, values_callable=enum_values), nullable=False, index=True)
    name = Column(String(128), nullable=False)
    data_amount = Column(String(32), nullable=False)
    price = Column(Numeric(12, 2), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)


Index("ix_bundles_network_active", Bundle.network, Bundle.is_active)
