"""SQLAlchemy models for Storage Dash.

All models are imported here so that ``Base.metadata`` knows every table
before ``create_all`` runs. If you add a new model, import it in this file.
"""

from storage_dash.models.customer import CUSTOMER_TYPES, Customer
from storage_dash.models.snapshot import MonthlySnapshot
from storage_dash.models.unit import UNIT_SIZES, Unit
from storage_dash.models.user import User

__all__ = [
    "CUSTOMER_TYPES",
    "Customer",
    "MonthlySnapshot",
    "UNIT_SIZES",
    "Unit",
    "User",
]
